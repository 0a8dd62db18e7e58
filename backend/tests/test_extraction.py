"""AI extraction: response parsing, category reconciliation, model choice and scanner endpoints."""
import asyncio
import json
from types import SimpleNamespace

import httpx
import pytest
from google.genai import errors as genai_errors

from seedvault.models import SeedCategory
from seedvault.services.errors import ExtractionError
from seedvault.services.extraction import (
    call_with_retry,
    page_text,
    parse_seed_json,
    reconcile_category,
    strip_fences,
    to_draft,
)

PEPPER_JSON = {
    "variety_name": "Jalapeño M",
    "vendor": "Burpee",
    "days_to_maturity": "75 days",
    "species": "Capsicum annuum",
    "category": "pepper",
    "notes": None,
    "companion_plants": ["Basil", "Onion"],
    "scoville_rating": "2,500-8,000",
    "cold_stratification": None,
    "light_required": False,
}


# ── Parsing ──────────────────────────────────────────────────
def test_strip_fences():
    assert strip_fences('```json\n{"a": 1}\n```') == '{"a": 1}'
    assert strip_fences('```{"a": 1}```') == '{"a": 1}'


def test_parse_seed_json_turns_nulls_into_empty_values():
    data = parse_seed_json("```json\n" + json.dumps(PEPPER_JSON) + "\n```")
    assert data["notes"] == ""
    assert data["cold_stratification"] == ""
    assert data["variety_name"] == "Jalapeño M"


def test_parse_seed_json_rejects_garbage():
    with pytest.raises(ExtractionError, match="Failed to parse AI response"):
        parse_seed_json("Here is your data: variety Jalapeño")
    with pytest.raises(ExtractionError, match="Failed to parse AI response"):
        parse_seed_json("[1, 2]")
    with pytest.raises(ExtractionError, match="No data returned"):
        parse_seed_json("")


def test_to_draft_stringifies_numeric_text_fields():
    data = parse_seed_json(
        json.dumps({"variety_name": "Sungold", "category": "Tomato", "germination_days": 7, "seed_depth": 0.25})
    )

    draft = to_draft(data)

    assert draft.germination_days == "7"
    assert draft.seed_depth == "0.25"


def test_to_draft_rounds_fractional_numbers():
    draft = to_draft(parse_seed_json(json.dumps({"variety_name": "Sungold", "days_to_maturity": 65.5})))
    assert draft.days_to_maturity in (65, 66)
    assert to_draft({"days_to_maturity": 70.2}).days_to_maturity == 70


def test_to_draft_reads_loose_flags():
    draft = to_draft(
        parse_seed_json(json.dumps({"cold_stratification": "Not required", "light_required": "Yes"}))
    )
    assert draft.cold_stratification is False
    assert draft.light_required is True


def test_to_draft_drops_fields_it_cannot_coerce():
    draft = to_draft({"variety_name": "Sungold", "species": {"genus": "Solanum"}, "companion_plants": [1, "Basil"]})
    assert draft.variety_name == "Sungold"
    assert draft.species is None
    assert draft.companion_plants == ["1", "Basil"]


def test_reconcile_category_snaps_to_existing_name():
    data = {"category": "pepper"}
    assert reconcile_category(data, ["Tomato", "Pepper"]) is None
    assert data["category"] == "Pepper"


def test_reconcile_category_proposes_new_category():
    data = {"category": "Ground Cherry"}
    suggestion = reconcile_category(data, ["Tomato", "Pepper"])
    assert data["category"] == "__NEW__"
    assert suggestion == {"name": "Ground Cherry", "prefix": "GR"}


def test_reconcile_category_leaves_blank_alone():
    data = {"category": ""}
    assert reconcile_category(data, ["Tomato"]) is None
    assert data["category"] == ""


# ── Page text ────────────────────────────────────────────────
def test_page_text_strips_chrome_and_truncates():
    html = """
    <html><head><meta property="og:image" content="https://cdn.test/og.jpg">
    <style>.x { color: red }</style><script>var tracking = 1;</script></head>
    <body><header>Site header</header><nav>Menu</nav>
    <h1>Sungold   F1</h1>
    <p>Extra sweet &amp; early.</p>
    <iframe>ad</iframe><footer>Copyright</footer></body></html>
    """
    text, og_image = page_text(html)
    assert text == "Sungold F1 Extra sweet & early."
    assert og_image == "https://cdn.test/og.jpg"

    truncated, _ = page_text("<p>" + "a" * 50 + "</p>", limit=10)
    assert truncated == "a" * 10


def test_page_text_accepts_name_og_image():
    _, og_image = page_text('<head><meta name="og:image" content="/img/pack.jpg"></head>')
    assert og_image == "/img/pack.jpg"


# ── Retry and model choice ───────────────────────────────────
def test_call_with_retry_backs_off_then_succeeds():
    attempts = []

    async def flaky():
        attempts.append(1)
        if len(attempts) < 3:
            raise httpx.ConnectError("boom")
        return "ok"

    assert asyncio.run(call_with_retry(flaky, retries=3, base_delay=0)) == "ok"
    assert len(attempts) == 3


def test_call_with_retry_gives_up_after_last_attempt():
    attempts = []

    async def broken():
        attempts.append(1)
        raise httpx.ConnectError("down")

    with pytest.raises(httpx.ConnectError):
        asyncio.run(call_with_retry(broken, retries=2, base_delay=0))
    assert len(attempts) == 2


def test_best_model_follows_preference_list(extractor, fake_models):
    assert asyncio.run(extractor.get_best_model()) == "gemini-2.5-flash"


def test_best_model_falls_back_to_first_available(extractor, fake_models):
    fake_models.available = [SimpleNamespace(name="models/gemini-exp-1206", supported_actions=["generateContent"])]
    assert asyncio.run(extractor.get_best_model()) == "gemini-exp-1206"


def test_best_model_uses_default_when_discovery_fails(extractor, fake_models):
    async def failing_list():
        raise genai_errors.APIError(503, {"error": {"message": "unavailable"}})

    fake_models.list = failing_list
    assert asyncio.run(extractor.get_best_model()) == "gemini-2.5-flash-lite"


def test_best_model_survives_unexpected_listing_shape(extractor, fake_models):
    async def odd_list():
        return [SimpleNamespace()]

    fake_models.list = odd_list
    assert asyncio.run(extractor.get_best_model()) == "gemini-2.5-flash-lite"


def test_autofill_keeps_populated_fields(extractor, fake_models):
    fake_models.texts = [
        json.dumps({"variety_name": "Wrong Name", "species": "Solanum lycopersicum", "days_to_maturity": 65})
    ]
    current = {"variety_name": "Sungold", "species": "", "days_to_maturity": None, "notes": "sweet"}

    merged = asyncio.run(extractor.autofill(current))

    assert merged["variety_name"] == "Sungold"
    assert merged["species"] == "Solanum lycopersicum"
    assert merged["days_to_maturity"] == 65
    assert merged["notes"] == "sweet"


def test_generate_plant_photo_returns_data_uri(extractor, fake_models):
    uri = asyncio.run(extractor.generate_plant_photo("Sungold", "Tomato"))
    assert uri.startswith("data:image/png;base64,")


# ── Scanner endpoints ────────────────────────────────────────
def test_scan_image_returns_reconciled_draft(client, admin_headers, fake_models, db_session):
    db_session.add(SeedCategory(name="Tomato", prefix="TM"))
    db_session.commit()
    fake_models.texts = [json.dumps(PEPPER_JSON)]

    resp = client.post(
        "/scanner/image",
        files={"file": ("packet.jpg", b"\xff\xd8jpegbytes", "image/jpeg")},
        headers=admin_headers,
    )

    assert resp.status_code == 200
    body = resp.json()
    assert body["draft"]["category"] == "__NEW__"
    assert body["draft"]["days_to_maturity"] == 75
    assert body["draft"]["scoville_rating"] == 2500
    assert body["draft"]["cold_stratification"] is False
    assert body["new_category"] == {"name": "pepper", "prefix": "PE"}
    assert body["image_preview"].startswith("data:image/jpeg;base64,")
    assert fake_models.calls[0]["model"] == "gemini-2.5-flash"


def test_scan_image_unparseable_response_is_502(client, admin_headers, fake_models):
    fake_models.texts = ["I could not read the packet."]

    resp = client.post(
        "/scanner/image",
        files={"file": ("packet.jpg", b"\xff\xd8jpegbytes", "image/jpeg")},
        headers=admin_headers,
    )

    assert resp.status_code == 502
    assert resp.json()["detail"] == "Failed to parse AI response. Ensure the image or link is clear."


def test_import_url_rejects_non_http(client, admin_headers):
    resp = client.post("/scanner/url", json={"url": "ftp://seeds.test/x"}, headers=admin_headers)
    assert resp.status_code == 400


def test_import_url_goes_through_proxy(client, admin_headers, fake_web, fake_models):
    page = (
        '<html><head><meta property="og:image" content="/img/sungold.jpg"></head>'
        "<body><nav>Shop</nav><h1>Sungold Tomato</h1><p>65 days</p></body></html>"
    )

    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.host == "proxy.test"
        assert request.url.params["url"] == "https://seeds.test/sungold"
        return httpx.Response(200, json={"contents": page})

    fake_web.handler = handler
    fake_models.texts = [json.dumps({"variety_name": "Sungold", "category": "", "days_to_maturity": 65})]

    resp = client.post("/scanner/url", json={"url": "https://seeds.test/sungold"}, headers=admin_headers)

    assert resp.status_code == 200
    body = resp.json()
    assert body["draft"]["variety_name"] == "Sungold"
    assert body["image_preview"] == "https://seeds.test/img/sungold.jpg"
    prompt = fake_models.calls[0]["contents"][0]
    assert "Sungold Tomato 65 days" in prompt
    assert "Shop" not in prompt


def test_magic_fill_reasks_with_draft(client, admin_headers, fake_models, db_session):
    db_session.add(SeedCategory(name="Tomato", prefix="TM"))
    db_session.commit()
    fake_models.texts = [json.dumps({"variety_name": "Sungold", "category": "TOMATO", "sunlight": "Full sun"})]

    resp = client.post(
        "/scanner/magic-fill",
        json={"draft": {"variety_name": "Sungold", "category": "Tomato"}},
        headers=admin_headers,
    )

    assert resp.status_code == 200
    body = resp.json()
    assert body["draft"]["category"] == "Tomato"
    assert body["draft"]["sunlight"] == "Full sun"
    assert body["new_category"] is None
    assert '"variety_name": "Sungold"' in fake_models.calls[0]["contents"][0]


def test_scanner_without_api_key_is_500(client, admin_headers):
    from seedvault.dependencies import get_extractor
    from seedvault.main import app

    del app.dependency_overrides[get_extractor]

    resp = client.post("/scanner/magic-fill", json={"draft": {"variety_name": "Sungold"}}, headers=admin_headers)

    assert resp.status_code == 500
    assert resp.json()["detail"].startswith("Missing API Key!")


def test_scanner_is_admin_only(client, viewer_headers):
    resp = client.post("/scanner/magic-fill", json={"draft": {"variety_name": "Sungold"}}, headers=viewer_headers)
    assert resp.status_code == 403
