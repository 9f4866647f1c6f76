"""
Location business key.

A work location is identified across imports, master-data reloads and
allocation records by ``client|project|location``, each part trimmed and
lowercased.  The key is independent of database identity, so the same
three names always produce the same key.
"""

KEY_SEPARATOR = "|"


def build_location_key(client: str, project: str, location: str) -> str:
    """
    Build the deterministic business key for a location.

    Raises:
        ValueError: If any of the three names is blank.
    """
    parts = []
    for label, value in (("client", client), ("project", project), ("location", location)):
        normalized = (value or "").strip().lower()
        if not normalized:
            raise ValueError(f"Location key requires a non-blank {label} name")
        parts.append(normalized)
    return KEY_SEPARATOR.join(parts)
