import base64
from uuid import UUID

import pytest
import responses

from proofcheck.base import (
    ValidationError,
    generate_keypair,
    sign_personal,
    timestamp_string,
    timestamp_to_time,
)
from proofcheck.steam import Steam, SteamID, extract_steam_id, parse_steam_xml

STEAM_ID = "76561197960290419"
CUSTOM_URL = "example-player"
PROOF_UUID = UUID("d035591e-f25f-4b06-8045-b96c1d9af454")
CREATED_AT = timestamp_to_time("1666257424")
CUSTOM_PAGE = f"https://steamcommunity.com/id/{CUSTOM_URL}/?xml=1"
ID_PAGE = f"https://steamcommunity.com/profiles/{STEAM_ID}/?xml=1"


def profile_xml(summary: str) -> str:
    return (
        '<?xml version="1.0" encoding="UTF-8" standalone="yes"?>'
        "<profile>"
        f"<steamID64>{STEAM_ID}</steamID64>"
        "<steamID><![CDATA[Example Player]]></steamID>"
        f"<customURL><![CDATA[{CUSTOM_URL}]]></customURL>"
        f"<summary><![CDATA[{summary}]]></summary>"
        "</profile>"
    )


def make(pubkey, identity=CUSTOM_URL, text=""):
    return Steam(
        pubkey=pubkey,
        identity=identity,
        text=text,
        created_at=CREATED_AT,
        uuid=PROOF_UUID,
    )


def signed_summary(pubkey, secret):
    reference = make(pubkey, identity=STEAM_ID, text="cached")
    payload = reference.generate_sign_payload()
    sig = base64.b64encode(sign_personal(payload, secret)).decode()
    return f"hello there NextID proof: {sig}:{timestamp_string(CREATED_AT)}:{PROOF_UUID}:null"


@pytest.fixture
def mocked():
    with responses.RequestsMock() as rsps:
        yield rsps


def test_parse_error_response():
    body = (
        '<?xml version="1.0" encoding="UTF-8" standalone="yes"?><response><error>'
        "<![CDATA[The specified profile could not be found.]]></error></response>"
    )
    with pytest.raises(ValidationError, match="The specified profile could not be found"):
        parse_steam_xml(body.encode())


def test_parse_correct_response():
    uid, username, description = parse_steam_xml(profile_xml("i like ash").encode())
    assert uid == STEAM_ID
    assert username == CUSTOM_URL
    assert "i like ash" in description


def test_parse_garbage():
    with pytest.raises(ValidationError, match="parsing steam profile page"):
        parse_steam_xml(b"not xml at all <")


def test_extract_steam_id_success():
    assert extract_steam_id("76561198092541763") == SteamID(universe=1, user_id=66138017, y=1)


def test_extract_steam_id_missing_universe():
    with pytest.raises(ValidationError, match="universe"):
        extract_steam_id("4503604054613827")


def test_extract_steam_id_wrong_magic_number():
    with pytest.raises(ValidationError, match="account type"):
        extract_steam_id("72057594170203971")


@pytest.mark.parametrize("text", ["", "abc", "+76561198092541763", "-1", "99999999999999999999"])
def test_extract_steam_id_rejects_non_numbers(text):
    with pytest.raises(ValidationError, match="parsing string SteamID"):
        extract_steam_id(text)


def test_fetch_user_info_custom_url(mocked):
    mocked.add(responses.GET, CUSTOM_PAGE, body=profile_xml("summary"))
    pub, _ = generate_keypair()
    steam = make(pub)
    steam.fetch_user_info()
    assert steam.identity == STEAM_ID
    assert steam.alt_id == CUSTOM_URL
    assert steam.text == "summary"


def test_fetch_user_info_steam_id(mocked):
    mocked.add(responses.GET, ID_PAGE, body=profile_xml("summary"))
    pub, _ = generate_keypair()
    steam = make(pub, identity=STEAM_ID)
    steam.fetch_user_info()
    assert steam.identity == STEAM_ID
    assert steam.alt_id == CUSTOM_URL


def test_fetch_user_info_bad_status(mocked):
    mocked.add(responses.GET, CUSTOM_PAGE, status=500)
    pub, _ = generate_keypair()
    with pytest.raises(ValidationError, match="status code 500"):
        make(pub).fetch_user_info()


def test_generate_sign_payload_uses_real_id(mocked):
    mocked.add(responses.GET, CUSTOM_PAGE, body=profile_xml("summary"))
    pub, _ = generate_keypair()
    payload = make(pub).generate_sign_payload()
    assert STEAM_ID in payload
    assert CUSTOM_URL not in payload
    assert '"prev":null' in payload


def test_generate_post_payload():
    pub, _ = generate_keypair()
    post = make(pub).generate_post_payload()["default"]
    assert post == f"NextID proof: %SIG_BASE64%:1666257424:{PROOF_UUID}:null"


def test_validate_success(mocked):
    pub, secret = generate_keypair()
    mocked.add(responses.GET, CUSTOM_PAGE, body=profile_xml(signed_summary(pub, secret)))
    steam = make(pub)
    steam.validate()
    assert steam.identity == STEAM_ID
    assert len(steam.signature) == 65


def test_validate_pubkey_mismatch(mocked):
    pub, secret = generate_keypair()
    other, _ = generate_keypair()
    mocked.add(responses.GET, CUSTOM_PAGE, body=profile_xml(signed_summary(pub, secret)))
    with pytest.raises(ValidationError, match="bad signature"):
        make(other).validate()


def test_validate_proof_not_found(mocked):
    mocked.add(responses.GET, CUSTOM_PAGE, body=profile_xml("i like ash"))
    pub, _ = generate_keypair()
    with pytest.raises(ValidationError, match="proof not found in user summary"):
        make(pub).validate()


def test_validate_fetch_failure(mocked):
    mocked.add(responses.GET, CUSTOM_PAGE, status=404)
    pub, _ = generate_keypair()
    with pytest.raises(ValidationError, match="error when generating sign payload"):
        make(pub).validate()