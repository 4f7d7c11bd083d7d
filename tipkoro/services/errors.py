"""
Service-layer errors, rendered as JSON by the app's error handlers
"""


class ServiceError(Exception):
    status_code = 400

    def __init__(self, message, status_code=None, **context):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code
        self.context = context

    def to_dict(self):
        payload = {'error': self.message}
        payload.update(self.context)
        return payload


class ValidationError(ServiceError):
    status_code = 400


class PreconditionError(ServiceError):
    status_code = 400


class NotFoundError(ServiceError):
    status_code = 404


class ConflictError(ServiceError):
    status_code = 409


class GatewayError(ServiceError):
    """Checkout initiation or verification against the gateway failed"""
    status_code = 500

    def __init__(self, details, message='Internal server error'):
        super().__init__(message, details=details)
