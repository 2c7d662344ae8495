"""
Tests for the HTTP Client.
==========================

Tests for:
- HtmlDocument queries and cell helpers
- HtmlClient requests, retries and failure capture (session mocked)
"""

from unittest.mock import MagicMock

import pytest
import requests
from bs4 import BeautifulSoup


def mock_response(html: str = "<html><body><table></table></body></html>") -> MagicMock:
    response = MagicMock()
    response.text = html
    response.content = html.encode()
    response.raise_for_status.return_value = None
    return response


def make_client(session: MagicMock, **config):
    from isq_explorer.ingestion.client import HtmlClient
    from isq_explorer.shared.config import ScrapingConfig

    config.setdefault("retry_min_wait", 0)
    config.setdefault("retry_max_wait", 0)
    return HtmlClient(config=ScrapingConfig(**config), session=session)


# ─────────────────────────────────────────────────────────────────────────────
# Document Tests
# ─────────────────────────────────────────────────────────────────────────────


class TestHtmlDocument:
    """Tests for HtmlDocument and cell helpers."""

    def test_query(self):
        """Test that query returns the element or a page error naming the URL."""
        from isq_explorer.ingestion.client import HtmlDocument
        from isq_explorer.shared.errors import HtmlPageError

        doc = HtmlDocument("https://example.com", "<select id='dept_id'></select>")

        assert doc.query("#dept_id").unwrap().name == "select"
        error = doc.query("#term_id").unwrap_err()
        assert isinstance(error, HtmlPageError)
        assert error.url == "https://example.com"

    def test_query_all(self):
        """Test that query_all returns every matching element."""
        from isq_explorer.ingestion.client import HtmlDocument

        doc = HtmlDocument("u", '<table class="datadisplaytable"></table><table></table>')
        assert len(doc.query_all("table.datadisplaytable")) == 1

    def test_option_elements_requires_select(self):
        """Test that options are only read from a select element."""
        from isq_explorer.ingestion.client import option_elements
        from isq_explorer.shared.errors import HtmlElementError

        div = BeautifulSoup("<div></div>", "lxml").find("div")
        with pytest.raises(HtmlElementError):
            option_elements(div)

    def test_expect_anchor(self):
        """Test that a cell must hold exactly one anchor."""
        from isq_explorer.ingestion.client import expect_anchor

        soup = BeautifulSoup(
            '<table><tr><td id="a"> <a href="x">CS 101</a> </td><td id="b">CS 101</td>'
            '<td id="c"><a>1</a><a>2</a></td></tr></table>',
            "lxml",
        )
        assert expect_anchor(soup.find(id="a")).unwrap().get("href") == "x"
        assert expect_anchor(soup.find(id="b")).is_err()
        assert expect_anchor(soup.find(id="c")).is_err()

    def test_cell_is_blank(self):
        """Test that non-breaking spaces count as a blank cell."""
        from isq_explorer.ingestion.client import cell_is_blank

        soup = BeautifulSoup("<table><tr><td id='a'>&nbsp;</td><td id='b'>x</td></tr></table>", "lxml")
        assert cell_is_blank(soup.find(id="a"))
        assert not cell_is_blank(soup.find(id="b"))


# ─────────────────────────────────────────────────────────────────────────────
# Client Tests
# ─────────────────────────────────────────────────────────────────────────────


class TestHtmlClient:
    """Tests for HtmlClient with a mocked session."""

    def test_fetch(self):
        """Test that fetch issues a GET with the configured timeout."""
        session = MagicMock()
        session.request.return_value = mock_response()
        client = make_client(session, timeout=7)

        result = client.fetch("https://example.com/page")

        assert result.is_ok()
        assert result.unwrap().url == "https://example.com/page"
        session.request.assert_called_once_with("GET", "https://example.com/page", timeout=7)
        assert client.stats.successful == 1

    def test_submit_form_posts_fields(self):
        """Test that submit_form posts the form fields."""
        session = MagicMock()
        session.request.return_value = mock_response()
        client = make_client(session)

        fields = {"pv_term": "201980", "pv_dept": "6001"}
        assert client.submit_form("https://example.com/form", fields).is_ok()

        args, kwargs = session.request.call_args
        assert args == ("POST", "https://example.com/form")
        assert kwargs["data"] == fields

    def test_connection_error_is_captured(self):
        """Test that connection errors are retried and then captured."""
        from isq_explorer.shared.errors import HtmlPageError

        session = MagicMock()
        session.request.side_effect = requests.ConnectionError("down")
        client = make_client(session, max_retries=2)

        result = client.fetch("https://example.com")

        assert result.is_err()
        assert isinstance(result.unwrap_err(), HtmlPageError)
        assert session.request.call_count == 2
        assert client.stats.failed == 1

    def test_retry_then_success(self):
        """Test that a timeout is retried until the request succeeds."""
        session = MagicMock()
        session.request.side_effect = [requests.Timeout("slow"), mock_response()]
        client = make_client(session, max_retries=3)

        assert client.fetch("https://example.com").is_ok()
        assert session.request.call_count == 2

    def test_http_error_not_retried(self):
        """Test that HTTP status errors are not retried."""
        session = MagicMock()
        response = mock_response()
        response.raise_for_status.side_effect = requests.HTTPError("404 Not Found")
        session.request.return_value = response
        client = make_client(session, max_retries=3)

        assert client.fetch("https://example.com").is_err()
        assert session.request.call_count == 1

    def test_programming_errors_propagate(self):
        """Test that only requests failures are captured."""
        session = MagicMock()
        session.request.side_effect = TypeError("bug")
        client = make_client(session)

        with pytest.raises(TypeError):
            client.fetch("https://example.com")

    def test_context_manager_closes_session(self):
        """Test that leaving the context closes the session."""
        session = MagicMock()
        with make_client(session) as client:
            pass
        session.close.assert_called_once()
        assert client._session is None
