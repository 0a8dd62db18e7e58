"""Sequential, category-prefixed seed shortcodes (TM1, TM2, ...)."""
import re

from sqlalchemy.orm import Session

from seedvault.models import InventorySeed


def next_id_from(existing_ids, prefix: str) -> str:
    """Return ``PREFIX{max+1}`` over the numeric suffixes anchored to ``prefix``."""
    pattern = re.compile(rf"^{re.escape(prefix)}(\d+)", re.IGNORECASE)
    max_num = 0
    for seed_id in existing_ids:
        match = pattern.match(seed_id)
        if match:
            max_num = max(max_num, int(match.group(1)))
    return f"{prefix.upper()}{max_num + 1}"


def generate_next_id(db: Session, prefix: str) -> str:
    """Next free ID for a category prefix.

    Not transactional: two concurrent creations with the same prefix can get
    the same ID, and the second insert then fails on the primary key.
    """
    rows = (
        db.query(InventorySeed.id)
        .filter(InventorySeed.id.ilike(f"{prefix}%"))
        .all()
    )
    return next_id_from((row.id for row in rows), prefix)
