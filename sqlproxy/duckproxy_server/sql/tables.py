"""
Table label resolution.

Clients address tables by display labels ("LOI Submissions") or by their
storage names ("LOI_Submissions"). The resolver maps both to the canonical
storage name used in generated SQL.

Invariants:
    - resolve() is idempotent: every canonical name maps to itself
    - Unknown labels pass through unchanged
    - No check is made that the table exists; a bad name surfaces as a
      StoreError when the statement runs
"""

from __future__ import annotations

from collections.abc import Mapping

DEFAULT_TABLES: dict[str, str] = {
    "Companies": "Companies",
    "Contacts": "Contacts",
    "LOI Submissions": "LOI_Submissions",
    "LOI_Submissions": "LOI_Submissions",
    "Touchpoints": "Touchpoints",
    "Blog Entries": "Blog_Entries",
    "Blog_Entries": "Blog_Entries",
    "Campaigns": "Campaigns",
    "Contact Form Submissions": "Contact_Form_Submissions",
    "Contact_Form_Submissions": "Contact_Form_Submissions",
    "Templates": "Templates",
}


class TableResolver:
    """Maps client-facing table labels to canonical storage names.

    Example:
        >>> resolver = TableResolver()
        >>> resolver.resolve("Blog Entries")
        'Blog_Entries'
        >>> resolver.resolve("Widgets")
        'Widgets'
    """

    def __init__(self, aliases: Mapping[str, str] | None = None) -> None:
        """Initialize the resolver.

        Args:
            aliases: Extra label -> canonical name pairs, merged over the
                default table map
        """
        self._tables = dict(DEFAULT_TABLES)
        for label, canonical in (aliases or {}).items():
            # An alias pointing at another label lands on that label's table
            canonical = self._tables.get(canonical, canonical)
            self._tables[label] = canonical
            self._tables.setdefault(canonical, canonical)

    def resolve(self, label: str) -> str:
        """Return the canonical storage name for a label."""
        return self._tables.get(label, label)

    @property
    def tables(self) -> list[str]:
        """Sorted canonical names known to the resolver."""
        return sorted(set(self._tables.values()))


def singular(table: str) -> str:
    """Singular form of a table name: one trailing "s" dropped."""
    return table[:-1] if table.endswith("s") else table


def parse_aliases(raw: str) -> dict[str, str]:
    """Parse "Label=Canonical,Other Label=Other" into a mapping.

    Raises:
        ValueError: If a pair has no "=" or an empty side
    """
    aliases: dict[str, str] = {}
    for pair in raw.split(","):
        if not pair.strip():
            continue
        label, sep, canonical = pair.partition("=")
        label, canonical = label.strip(), canonical.strip()
        if not sep or not label or not canonical:
            raise ValueError(f"Invalid table alias '{pair.strip()}', expected Label=Canonical")
        aliases[label] = canonical
    return aliases
