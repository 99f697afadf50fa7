class UploadServiceError(Exception):
    """Base for errors answered as {"success": false, "message": ...}."""

    status_code = 500

    def __init__(self, message: str, status_code: int = None, **extra):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code
        self.extra = extra

    def to_dict(self) -> dict:
        return {"success": False, "message": self.message, **self.extra}


class ClientInputError(UploadServiceError):
    status_code = 400


class AssetNotFoundError(UploadServiceError):
    status_code = 404

    def __init__(self, message: str = "File not found", **extra):
        super().__init__(message, **extra)


class InternalError(UploadServiceError):
    """Unexpected failure; the message is generic and the cause only goes to the log."""

    status_code = 500
