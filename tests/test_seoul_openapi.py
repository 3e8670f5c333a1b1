import pytest
import requests

from toilet_registry.vendors import seoul_openapi

BASE_URL = "http://openapi.example/secret-key/xml/mgisToiletPoi"

PAGE_XML = """<?xml version="1.0" encoding="UTF-8"?>
<mgisToiletPoi>
  <list_total_count>3</list_total_count>
  <RESULT><CODE>INFO-000</CODE><MESSAGE>OK</MESSAGE></RESULT>
  <row><OBJECTID>1</OBJECTID><CONTS_NAME> Plaza </CONTS_NAME></row>
  <Row><ID>2</ID><FNAME>Station</FNAME></Row>
</mgisToiletPoi>
""".encode("utf-8")

NO_DATA_XML = b"<RESULT><CODE>INFO-200</CODE><MESSAGE>no data</MESSAGE></RESULT>"
BAD_KEY_XML = b"<RESULT><CODE>INFO-100</CODE><MESSAGE>invalid key</MESSAGE></RESULT>"


class DummyResponse:
    def __init__(self, status_code=200, content=b"", headers=None):
        self.status_code = status_code
        self.content = content
        self.headers = headers or {}

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError("http error", response=self)


class DummySession:
    def __init__(self):
        self.calls = []
        self.response = None
        self.error = None

    def get(self, url, timeout=None):
        self.calls.append((url, timeout))
        if self.error is not None:
            raise self.error
        return self.response


@pytest.fixture(autouse=True)
def patch_session(monkeypatch):
    session = DummySession()
    monkeypatch.setattr(seoul_openapi, "_SESSION", session)
    return session


def test_build_page_url():
    assert seoul_openapi.build_page_url(BASE_URL + "/", 1, 1000) == BASE_URL + "/1/1000/"


def test_fetch_page_parses_rows(patch_session):
    patch_session.response = DummyResponse(content=PAGE_XML)

    page = seoul_openapi.fetch_page(1, 2, BASE_URL)

    assert page.start_index == 1 and page.end_index == 2
    assert page.rows == [{"OBJECTID": "1", "CONTS_NAME": "Plaza"}, {"ID": "2", "FNAME": "Station"}]
    assert page.total_count == 3
    url, timeout = patch_session.calls[0]
    assert url == BASE_URL + "/1/2/"
    assert timeout == 10


def test_fetch_page_no_data_is_empty_page(patch_session):
    patch_session.response = DummyResponse(content=NO_DATA_XML)

    page = seoul_openapi.fetch_page(5001, 6000, BASE_URL, timeout=3)

    assert page.rows == []
    assert patch_session.calls[0][1] == 3


def test_fetch_page_upstream_error_code(patch_session):
    patch_session.response = DummyResponse(content=BAD_KEY_XML)

    with pytest.raises(seoul_openapi.UpstreamUnavailable) as excinfo:
        seoul_openapi.fetch_page(1, 10, BASE_URL)

    assert "INFO-100" in str(excinfo.value)


def test_fetch_page_http_error(patch_session):
    patch_session.response = DummyResponse(status_code=503)

    with pytest.raises(seoul_openapi.UpstreamUnavailable) as excinfo:
        seoul_openapi.fetch_page(1, 10, BASE_URL)

    assert "503" in str(excinfo.value)


def test_fetch_page_transport_error_hides_url(patch_session):
    patch_session.error = requests.ConnectionError(f"Max retries exceeded with url: {BASE_URL}/1/10/")

    with pytest.raises(seoul_openapi.UpstreamUnavailable) as excinfo:
        seoul_openapi.fetch_page(1, 10, BASE_URL)

    assert "secret-key" not in str(excinfo.value)
    assert "ConnectionError" in str(excinfo.value)


def test_fetch_page_timeout_is_unavailable(patch_session):
    patch_session.error = requests.Timeout()

    with pytest.raises(seoul_openapi.UpstreamUnavailable):
        seoul_openapi.fetch_page(1, 10, BASE_URL)


def test_fetch_page_malformed_body(patch_session):
    patch_session.response = DummyResponse(content=b"<html><body>oops")

    with pytest.raises(seoul_openapi.UpstreamMalformed):
        seoul_openapi.fetch_page(1, 10, BASE_URL)


def test_fetch_raw_returns_body_and_content_type(patch_session):
    patch_session.response = DummyResponse(content=PAGE_XML, headers={"Content-Type": "text/xml;charset=UTF-8"})

    raw = seoul_openapi.fetch_raw(1, 60, BASE_URL)

    assert raw.body == PAGE_XML
    assert raw.content_type == "text/xml;charset=UTF-8"


def test_fetch_raw_defaults_content_type(patch_session):
    patch_session.response = DummyResponse(content=b"<x/>")

    raw = seoul_openapi.fetch_raw(1, 60, BASE_URL)

    assert raw.content_type == seoul_openapi.DEFAULT_CONTENT_TYPE


def test_fetch_page_rejects_xml_without_result_or_rows(patch_session):
    patch_session.response = DummyResponse(content=b"<html><body><h1>Service Unavailable</h1></body></html>")

    with pytest.raises(seoul_openapi.UpstreamMalformed):
        seoul_openapi.fetch_page(1, 10, BASE_URL)


def test_fetch_page_accepts_rows_without_result(patch_session):
    patch_session.response = DummyResponse(content=b"<mgisToiletPoi><row><OBJECTID>1</OBJECTID></row></mgisToiletPoi>")

    page = seoul_openapi.fetch_page(1, 10, BASE_URL)

    assert page.rows == [{"OBJECTID": "1"}]
