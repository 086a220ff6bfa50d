"""
Initialize the Celery application.

Run a worker with ``celery -A openvax_auth.worker.celery_app worker``.
"""

from openvax_auth.factory import create_worker_app, celery_app

flask_app = create_worker_app()
flask_app.app_context().push()
