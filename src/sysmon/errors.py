"""Exception types for sysmon."""


class SysmonError(Exception):
    """Base class for sysmon errors."""


class Unavailable(SysmonError):
    """A counter source could not be opened or queried."""

    def __init__(self, source: str, reason: str = "") -> None:
        self.source = source
        self.reason = reason
        message = f"{source} unavailable"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)


class PartiallyParsed(SysmonError):
    """A source was read but some expected fields were missing or malformed."""

    def __init__(self, source: str, missing: tuple[str, ...] = ()) -> None:
        self.source = source
        self.missing = missing
        detail = ", ".join(missing) if missing else "malformed input"
        super().__init__(f"{source} partially parsed ({detail})")


class SamplingCancelled(SysmonError):
    """A sampling wait was interrupted by a stop request."""
