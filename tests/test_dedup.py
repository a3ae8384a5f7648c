from jobcatalog.schemas.listing import Listing, Source
from jobcatalog.services.dedup import DeduplicationKeyer


def _listing(url=None, external_id=None, title="Frontend Developer", company="Acme"):
    return Listing(title=title, company=company, source=Source(site="Jora", url=url, external_id=external_id))


def test_same_listing_content_yields_same_key():
    keyer = DeduplicationKeyer()
    first = _listing(url="https://au.jora.com/job/123456")
    second = _listing(url="https://au.jora.com/job/123456")

    assert keyer.derive_key(first) == keyer.derive_key(second) == "123456"
    assert keyer.job_id(first) == keyer.job_id(second)


def test_url_id_wins_over_external_id():
    keyer = DeduplicationKeyer()
    listing = _listing(url="https://au.jora.com/job/98765?sp=serp", external_id="other-id")

    assert keyer.derive_key(listing) == "98765"


def test_jk_parameter_is_lower_cased():
    keyer = DeduplicationKeyer()
    listing = _listing(url="https://au.jora.com/viewjob?jk=AbC123&from=serp")

    assert keyer.derive_key(listing) == "abc123"


def test_url_without_id_falls_back_to_normalized_url():
    keyer = DeduplicationKeyer()
    listing = _listing(url="  https://Example.com/Careers/Posting-A  ")

    assert keyer.derive_key(listing) == "https://example.com/careers/posting-a"


def test_external_id_used_when_url_missing():
    keyer = DeduplicationKeyer()
    listing = _listing(external_id="  JORA-77  ")

    assert keyer.derive_key(listing) == "jora-77"


def test_content_hash_ignores_case_and_whitespace():
    keyer = DeduplicationKeyer()
    first = _listing(title="Frontend   Developer", company="ACME ")
    second = _listing(title="frontend developer", company="acme")

    key = keyer.derive_key(first)
    assert key == keyer.derive_key(second)
    assert len(key) == 20
    assert keyer.derive_key(_listing(title="Backend Developer")) != key


def test_job_id_uses_site_slug_and_short_token():
    keyer = DeduplicationKeyer()

    assert keyer.job_id(_listing(url="https://au.jora.com/job/42")) == "jora_42"

    long_key = keyer.job_id(_listing(url="https://example.com/careers/posting-a"))
    prefix, token = long_key.split("_", 1)
    assert prefix == "jora"
    assert len(token) == 20


def test_seen_keys_reject_repeats_within_a_session_only():
    keyer = DeduplicationKeyer()
    session = keyer.new_session()

    assert session.add("123") is True
    assert session.add("123") is False
    assert "123" in session
    assert len(session) == 1

    other = keyer.new_session()
    assert other.add("123") is True
