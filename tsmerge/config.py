from __future__ import annotations

from dataclasses import dataclass

# Import source whose named symbols are unioned across base and modules.
DEFAULT_LIBRARY = "scrypt-ts"
# Parameter type used for properties declared without a type annotation.
DEFAULT_ANY_TYPE = "any"
DEFAULT_INDENT = "    "
DEFAULT_QUOTE = "'"


@dataclass(frozen=True)
class ComposeOptions:
    library: str = DEFAULT_LIBRARY
    any_type: str = DEFAULT_ANY_TYPE
    indent: str = DEFAULT_INDENT
    quote: str = DEFAULT_QUOTE

    def __post_init__(self) -> None:
        if not self.library:
            raise ValueError("shared library specifier must not be empty")
        if self.quote not in ("'", '"'):
            raise ValueError(f"unsupported quote character {self.quote!r}")
        if self.indent.strip():
            raise ValueError("indent must be whitespace")
