class BridgeError:
    def __init__(self, detail: str):
        self.detail = detail

    def __str__(self):
        return f"{self.__class__.__name__}: {repr(self.detail)}"


class BridgeConnectionError(BridgeError, IOError):
    pass


class NotFoundError(BridgeConnectionError):
    pass


class NotAuthenticatedError(BridgeConnectionError):
    pass


class FetchError(BridgeError, IOError):
    """
    Failed to retrieve a page. The underlying error is available as `__cause__`.
    """


class ExhaustedError(BridgeError, RuntimeError):
    """
    `next()` was called on an iterator with no items left.
    """


class ProtocolError(ValueError):
    def __init__(self, message: str, body: str):
        self.message = message
        self.body = body

    def __str__(self):
        return f"{self.__class__.__name__}: {repr(self.message)}\n{self.body}"


class ProtocolCorruptedError(ProtocolError):
    pass
