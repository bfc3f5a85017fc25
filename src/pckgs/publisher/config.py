"""
Boundary configuration for a publish run. Everything here is resolved once,
before the publishing core is entered.
"""

from attrs import Attribute, define, field

from .exceptions import InvalidInputError
from .models import DEFAULT_REGISTRY_URL, MAX_PACKAGE_SIZE

DEFAULT_TIMEOUT_SECONDS = 600.0

# YAML 1.2 core schema spellings, as CI action runners accept them.
TRUE_VALUES = frozenset({"true", "True", "TRUE"})
FALSE_VALUES = frozenset({"false", "False", "FALSE"})


def parse_bool(value: str | bool | None, *, legacy: bool = False, name: str = "input") -> bool:
    """
    Parses a boolean input. In legacy mode only the exact string "true" is
    true and everything else is false; otherwise unknown spellings are rejected.
    """
    if isinstance(value, bool):
        return value
    if value is None:
        value = ""
    value = value.strip()
    if legacy:
        return value == "true"
    if value in TRUE_VALUES:
        return True
    if value in FALSE_VALUES:
        return False
    raise InvalidInputError(
        f"Input '{name}' does not meet YAML 1.2 \"Core Schema\" specification: "
        f"'{value}'. Support boolean input list: `true | True | TRUE | false | False | FALSE`"
    )


def _non_empty(instance: object, attribute: Attribute, value: str) -> None:
    if not value or not value.strip():
        raise InvalidInputError(f"'{attribute.name}' must not be empty.")


def _none_if_empty(value: str | None) -> str | None:
    if value is None:
        return None
    value = value.strip()
    return value or None


@define(frozen=True, slots=True)
class PublishConfig:
    package_folder: str = field(validator=_non_empty)
    access_token: str = field(repr=False, validator=_non_empty)
    is_public: bool = field(default=False)
    version: str | None = field(default=None, converter=_none_if_empty)
    contributor_email: str | None = field(default=None, converter=_none_if_empty)
    contributor_name: str | None = field(default=None, converter=_none_if_empty)
    contributor_url: str | None = field(default=None, converter=_none_if_empty)
    registry_url: str = field(default=DEFAULT_REGISTRY_URL)
    timeout: float | None = field(default=DEFAULT_TIMEOUT_SECONDS)
    max_package_size: int = field(default=MAX_PACKAGE_SIZE)
