"""Exception types for drift-fst.

Each subclasses the built-in exception a caller would otherwise expect, so
``except ValueError`` / ``except KeyError`` keep working.
"""


class InvalidArgumentError(ValueError):
    """Bad simulation or frequency input (size, generations, frequency)."""


class MissingColumnError(KeyError):
    """A statistics table lacks one or more required columns."""

    def __init__(self, missing, available=()):
        self.missing = list(missing)
        self.available = list(available)
        super().__init__(
            f"Missing required column(s) {self.missing}; "
            f"table has {self.available}"
        )

    def __str__(self) -> str:
        return self.args[0]


class MalformedRowError(ValueError):
    """A statistics table row cannot be interpreted (non-numeric, duplicate)."""


class MissingPairError(KeyError):
    """A requested (a, b) population pair has no value in the table."""

    def __init__(self, a, b, detail: str = ""):
        self.a = a
        self.b = b
        msg = f"No estimate for pair ({a!r}, {b!r})"
        if detail:
            msg = f"{msg}: {detail}"
        super().__init__(msg)

    def __str__(self) -> str:
        return self.args[0]
