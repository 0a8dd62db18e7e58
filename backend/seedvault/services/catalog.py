"""Pure catalog logic: heat levels, wishlist browsing, tray stats, demand."""
from typing import Iterable, List, Optional

# (upper bound exclusive, label); anything at or above the last bound is Superhot
HEAT_LEVELS = (
    (1, "Sweet"),
    (2_500, "Mild"),
    (30_000, "Medium"),
    (100_000, "Hot"),
    (300_000, "X-Hot"),
)

ALL_CATEGORIES = "All"


def heat_level(shu: Optional[int]) -> Optional[str]:
    if shu is None:
        return None
    for bound, label in HEAT_LEVELS:
        if shu < bound:
            return label
    return "Superhot"


def category_options(seeds) -> List[str]:
    return [ALL_CATEGORIES] + sorted({seed.category for seed in seeds if seed.category})


def _matches(seed, needle: str) -> bool:
    haystacks = (seed.variety_name, seed.species, seed.notes)
    return any(needle in (text or "").lower() for text in haystacks)


def filter_and_sort_catalog(
    seeds: Iterable,
    category: Optional[str] = None,
    query: Optional[str] = None,
    sort: str = "name_asc",
) -> list:
    """Wishlist browsing over the whole inventory; nothing is paginated."""
    result = list(seeds)
    if category and category != ALL_CATEGORIES:
        result = [seed for seed in result if seed.category == category]

    needle = (query or "").strip().lower()
    if needle:
        result = [seed for seed in result if _matches(seed, needle)]

    def name(seed):
        return (seed.variety_name or "").lower()

    if sort == "name_desc":
        result.sort(key=name, reverse=True)
    elif sort == "category":
        result.sort(key=lambda seed: ((seed.category or "").lower(), name(seed)))
    elif sort == "dtm_asc":
        # unknown maturity sorts last either way
        result.sort(key=lambda seed: seed.days_to_maturity if seed.days_to_maturity is not None else 9999)
    elif sort == "dtm_desc":
        result.sort(key=lambda seed: seed.days_to_maturity if seed.days_to_maturity is not None else -1, reverse=True)
    else:
        result.sort(key=name)
    return result


# ── Trays ────────────────────────────────────────────────────
def germination_rate(sown: int, germinated: int) -> int:
    if not sown:
        return 0
    return round(germinated / sown * 100)


def tray_stats(contents: Iterable[dict]) -> dict:
    records = []
    total_sown = total_germinated = total_planted = 0
    for record in contents:
        sown = record.get("sown_count") or 0
        germinated = record.get("germinated_count") or 0
        planted = record.get("planted_count") or 0
        total_sown += sown
        total_germinated += germinated
        total_planted += planted
        records.append({**record, "germination_rate": germination_rate(sown, germinated)})

    return {
        "total_sown": total_sown,
        "total_germinated": total_germinated,
        "total_planted": total_planted,
        "germination_rate": germination_rate(total_sown, total_germinated),
        "records": records,
    }


# ── Demand planner ───────────────────────────────────────────
def aggregate_demand(selections: Iterable, requester_names: dict) -> tuple[list, list]:
    """Group a season's selections into per-seed demand and custom requests.

    ``requester_names`` maps session id to list name. Demand is sorted by
    count (highest first, ties keep first-seen order); custom requests are
    newest first.
    """
    demand: dict = {}
    custom_requests = []
    for selection in selections:
        requester = requester_names.get(selection.session_id, "Unknown")
        if selection.seed_id and selection.seed is not None:
            entry = demand.get(selection.seed_id)
            if entry is None:
                demand[selection.seed_id] = {"seed": selection.seed, "count": 1, "requesters": [requester]}
                continue
            entry["count"] += 1
            if requester not in entry["requesters"]:
                entry["requesters"].append(requester)
        elif selection.custom_request:
            custom_requests.append(
                {
                    "id": selection.id,
                    "requester": requester,
                    "request": selection.custom_request,
                    "created_at": selection.created_at,
                }
            )

    ranked = sorted(demand.values(), key=lambda item: item["count"], reverse=True)
    custom_requests.sort(key=lambda item: item["created_at"], reverse=True)
    return ranked, custom_requests
