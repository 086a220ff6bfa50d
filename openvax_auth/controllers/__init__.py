"""
Controllers for the OpenVax account services.

Each controller takes request data and returns a ``(data, status, headers)``
tuple; the routes in :mod:`openvax_auth.routes` turn that into a response.
"""
