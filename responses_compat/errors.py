"""Parse failures that are logged and recovered from, never surfaced to clients"""


class MalformedReply(ValueError):
    """Upstream text could not be recovered as JSON by any strategy"""


class ParserFeedError(ValueError):
    """A single streamed frame could not be decoded"""

    def __init__(self, message: str, data: str = ""):
        self.data = data
        super().__init__(message)
