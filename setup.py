"""Install the OpenVax account services."""

from setuptools import setup, find_packages

setup(
    name='openvax-auth',
    version='0.1.0',
    packages=find_packages(exclude=['*test*']),
    package_data={'openvax_auth': ['templates/mail/*.html',
                                   'templates/pages/*.html']},
    scripts=['bin/openvax-accounts'],
    python_requires='>=3.8',
    install_requires=[
        "flask",
        "firebase-admin",
        "google-cloud-firestore",
        "python-dateutil",
        "pytz",
        "retry",
        "click",
        "celery[redis]",
        "kombu",
        "python-json-logger",
        "jinja2",
        "werkzeug"
    ],
    extras_require={
        'test': [
            "pytest",
            "hypothesis",
            "mimesis"
        ]
    },
    zip_safe=False
)
