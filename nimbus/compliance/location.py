"""LocationResolver — map a raw location token to a Jurisdiction."""

from __future__ import annotations

import logging
import re
from typing import Mapping

from nimbus.compliance.rules import UNKNOWN_JURISDICTION, Jurisdiction
from nimbus.errors import ConfigurationError

logger = logging.getLogger(__name__)

# Five-digit postal code, optionally ZIP+4, anywhere in the token
_POSTAL_RE = re.compile(r"\b(\d{5})(?:-\d{4})?\b")

_PREFIX_RE = re.compile(r"^\d{3}$")


class LocationResolver:
    """Fixed-table resolver: jurisdiction code or postal prefix -> Jurisdiction.

    Unresolvable tokens yield :data:`UNKNOWN_JURISDICTION`; they never raise.

    Parameters
    ----------
    jurisdictions:
        Jurisdiction code -> display name.
    postal_prefixes:
        Three-digit postal prefix -> jurisdiction code.

    Raises
    ------
    ConfigurationError
        If a prefix is not three digits or maps to an unregistered code.
    """

    def __init__(
        self,
        jurisdictions: Mapping[str, str],
        postal_prefixes: Mapping[str, str],
    ) -> None:
        self._jurisdictions: dict[str, Jurisdiction] = {
            code.upper(): Jurisdiction(code=code.upper(), name=name)
            for code, name in jurisdictions.items()
        }
        self._prefixes: dict[str, Jurisdiction] = {}
        for prefix, code in postal_prefixes.items():
            if not _PREFIX_RE.match(prefix):
                raise ConfigurationError(f"Postal prefix {prefix!r} must be three digits")
            jurisdiction = self._jurisdictions.get(code.upper())
            if jurisdiction is None:
                raise ConfigurationError(
                    f"Postal prefix {prefix!r} maps to unknown jurisdiction {code!r}"
                )
            self._prefixes[prefix] = jurisdiction

    def resolve(self, location_token: str) -> Jurisdiction:
        """Return the Jurisdiction for *location_token*.

        Accepts a jurisdiction code (``'DEN-CO'``), a postal code
        (``'80202'``, ``'80202-1234'``) or free text containing one
        (``'Denver, CO 80202'``).
        """
        token = (location_token or "").strip().upper()
        if not token:
            return UNKNOWN_JURISDICTION

        if token in self._jurisdictions:
            return self._jurisdictions[token]

        m = _POSTAL_RE.search(token)
        if m:
            jurisdiction = self._prefixes.get(m.group(1)[:3])
            if jurisdiction is not None:
                return jurisdiction

        logger.debug("No jurisdiction for location token %r", location_token)
        return UNKNOWN_JURISDICTION

    def known_codes(self) -> list[str]:
        return list(self._jurisdictions)


def default_resolver() -> LocationResolver:
    """Resolver over the embedded jurisdiction and postal-prefix tables."""
    from nimbus.compliance.seed_data import JURISDICTIONS, POSTAL_PREFIXES

    return LocationResolver(JURISDICTIONS, POSTAL_PREFIXES)
