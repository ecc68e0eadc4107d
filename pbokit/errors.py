class PboError(Exception):
    """Base class for pbokit-specific errors."""


# Parsing
class FormatError(PboError):
    pass


class TruncatedArchiveError(FormatError):
    pass


class SentinelPositionError(FormatError):
    pass


# Lookup
class EntryNotFoundError(PboError, KeyError):
    def __init__(self, name: str):
        super().__init__(name)
        self.name = name

    def __str__(self) -> str:
        return f"entry not found: {self.name}"


# Packing
class ConfigCompileError(PboError):
    pass


class TargetExistsError(PboError):
    pass
