"""Exception hierarchy shared by the capture, encoding and inference layers."""


class LiveScribeError(Exception):
    """Base class for errors raised by livescribe."""


__all__ = ["LiveScribeError"]
