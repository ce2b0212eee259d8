"""Exception types raised by safesignal components."""


class SafeSignalError(Exception):
    """Base class for safesignal errors."""


class LexiconError(SafeSignalError, ValueError):
    """A lexicon data file is malformed."""


class StoreError(SafeSignalError, RuntimeError):
    """A counter-store read or write failed."""


class ClassifierError(SafeSignalError, RuntimeError):
    """The image classifier could not produce labels."""
