"""Public wishlist catalog behind magic links."""
import uuid
from datetime import datetime, timedelta, timezone

from seedvault.models import InventorySeed, Season, WishlistSelection, WishlistSession


def _catalog(db_session, expires_at=None, with_season=True):
    season = Season(name="Spring 2026") if with_season else None
    if season:
        db_session.add(season)
        db_session.flush()
    db_session.add_all(
        [
            InventorySeed(id="TM1", category="Tomato", variety_name="Sungold", days_to_maturity=65, notes="Very sweet"),
            InventorySeed(id="TM2", category="Tomato", variety_name="Brandywine", days_to_maturity=90),
            InventorySeed(id="PP1", category="Pepper", variety_name="Jalapeño", species="Capsicum annuum"),
            InventorySeed(id="HB1", category="Herb", variety_name="Genovese Basil", days_to_maturity=60),
        ]
    )
    session = WishlistSession(
        id=uuid.uuid4(),
        season_id=season.id if season else uuid.uuid4(),
        list_name="Grandma",
        expires_at=expires_at,
    )
    db_session.add(session)
    db_session.commit()
    return str(session.id)


def test_catalog_lists_everything_with_categories(client, viewer_headers, db_session):
    token = _catalog(db_session)

    resp = client.get(f"/wishlist/{token}", headers=viewer_headers)

    assert resp.status_code == 200
    body = resp.json()
    assert body["season_name"] == "Spring 2026"
    assert body["categories"] == ["All", "Herb", "Pepper", "Tomato"]
    assert [s["variety_name"] for s in body["seeds"]] == ["Brandywine", "Genovese Basil", "Jalapeño", "Sungold"]
    assert body["session"]["link"] == f"https://garden.test/wishlist/{token}"


def test_catalog_filters_and_sorts(client, viewer_headers, db_session):
    token = _catalog(db_session)

    def ids(**params):
        return [s["id"] for s in client.get(f"/wishlist/{token}", params=params, headers=viewer_headers).json()["seeds"]]

    assert ids(category="Tomato") == ["TM2", "TM1"]
    assert ids(q="capsicum") == ["PP1"]
    assert ids(q="sweet") == ["TM1"]
    assert ids(sort="name_desc") == ["TM1", "PP1", "HB1", "TM2"]
    assert ids(sort="category") == ["HB1", "PP1", "TM2", "TM1"]
    assert ids(sort="dtm_asc") == ["HB1", "TM1", "TM2", "PP1"]
    assert ids(sort="dtm_desc") == ["TM2", "TM1", "HB1", "PP1"]


def test_catalog_rejects_unknown_sort(client, viewer_headers, db_session):
    token = _catalog(db_session)
    assert client.get(f"/wishlist/{token}", params={"sort": "random"}, headers=viewer_headers).status_code == 422


def test_unknown_token_is_404(client, viewer_headers):
    for token in (str(uuid.uuid4()), "not-a-uuid"):
        resp = client.get(f"/wishlist/{token}", headers=viewer_headers)
        assert resp.status_code == 404
        assert resp.json()["detail"] == "Invalid or expired link."


def test_expired_link_is_410(client, viewer_headers, db_session):
    token = _catalog(db_session, expires_at=datetime.now(timezone.utc) - timedelta(hours=1))

    resp = client.get(f"/wishlist/{token}", headers=viewer_headers)
    submit = client.post(f"/wishlist/{token}/submit", json={"seed_ids": ["TM1"]}, headers=viewer_headers)

    assert resp.status_code == 410
    assert resp.json()["detail"] == "This wishlist link has expired."
    assert submit.status_code == 410
    assert db_session.query(WishlistSelection).count() == 0


def test_future_expiry_still_browses(client, viewer_headers, db_session):
    token = _catalog(db_session, expires_at=datetime.now(timezone.utc) + timedelta(days=3))
    assert client.get(f"/wishlist/{token}", headers=viewer_headers).status_code == 200


def test_missing_season_uses_fallback_name(client, viewer_headers, db_session):
    token = _catalog(db_session, with_season=False)

    body = client.get(f"/wishlist/{token}", headers=viewer_headers).json()

    assert body["season_name"] == "the upcoming season"


def test_empty_submission_inserts_nothing(client, viewer_headers, db_session):
    token = _catalog(db_session)

    resp = client.post(f"/wishlist/{token}/submit", json={"seed_ids": [], "custom_request": "   "}, headers=viewer_headers)

    assert resp.status_code == 200
    assert resp.json() == {"status": "submitted", "inserted": 0}
    assert db_session.query(WishlistSelection).count() == 0


def test_submission_inserts_selections_and_custom_request(client, viewer_headers, db_session):
    token = _catalog(db_session)

    resp = client.post(
        f"/wishlist/{token}/submit",
        json={"seed_ids": ["TM1", "PP1", "TM1"], "custom_request": "  Any purple carrots?  "},
        headers=viewer_headers,
    )

    assert resp.json() == {"status": "submitted", "inserted": 3}
    rows = db_session.query(WishlistSelection).all()
    assert sorted(r.seed_id for r in rows if r.seed_id) == ["PP1", "TM1"]
    assert [r.custom_request for r in rows if r.custom_request] == ["Any purple carrots?"]


def test_submission_with_unknown_seed_is_400(client, viewer_headers, db_session):
    token = _catalog(db_session)

    resp = client.post(f"/wishlist/{token}/submit", json={"seed_ids": ["TM1", "ZZ9"]}, headers=viewer_headers)

    assert resp.status_code == 400
    assert "ZZ9" in resp.json()["detail"]
    assert db_session.query(WishlistSelection).count() == 0
