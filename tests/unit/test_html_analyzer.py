import pytest
from app.fetch.dom import parse_html
from app.fetch.html_analyzer import ExtractedSignals, HtmlExtractor

class TestTextExtraction:
    """Unit tests for plain-text extraction"""

    def test_strips_scripts_and_styles(self):
        html = """
        <html>
        <head><style>.x { color: red; }</style></head>
        <body>
            <script>console.log('tracking');</script>
            <h1>Data Engineer</h1>
            <p>Build   pipelines
               with Python</p>
        </body>
        </html>
        """
        text = HtmlExtractor().extract_text(html)
        assert text == "Data Engineer Build pipelines with Python"

    def test_without_body_uses_whole_document(self):
        assert HtmlExtractor().extract_text("<p>Just a fragment</p>") == "Just a fragment"

class TestMetadataExtraction:
    """Unit tests for title and meta tags"""

    def test_collects_title_meta_og_and_twitter(self, job_page_html):
        metadata = HtmlExtractor().extract_metadata(job_page_html)

        assert metadata["title"] == "Senior Python Engineer - Acme Corp"
        assert metadata["description"] == "Join Acme as a Senior Python Engineer"
        assert metadata["og:title"] == "Senior Python Engineer"
        assert metadata["twitter:card"] == "summary"

    def test_ignores_meta_without_content(self):
        html = '<meta name="robots"><meta charset="utf-8"><meta property="og:type" content="website">'
        assert HtmlExtractor().extract_metadata(html) == {"og:type": "website"}

class TestLinkExtraction:
    """Unit tests for anchors and images"""

    def test_resolves_against_base_url_and_dedupes(self):
        html = """
        <a href="/jobs/1">One</a>
        <a href="https://example.com/jobs/1">One again</a>
        <a href="jobs/2">Two</a>
        <img src="/logo.png">
        <a>No href</a>
        """
        links = HtmlExtractor().extract_links(html, base_url="https://example.com/careers/")
        assert links == [
            "https://example.com/jobs/1",
            "https://example.com/careers/jobs/2",
            "https://example.com/logo.png",
        ]

    def test_without_base_url_keeps_raw_values(self):
        links = HtmlExtractor().extract_links('<a href="/a">A</a><a href="/a">A</a>')
        assert links == ["/a"]

    def test_no_links_is_empty_not_error(self):
        assert HtmlExtractor().extract_links("<p>nothing here</p>") == []

class TestStructuredData:
    """Unit tests for JSON-LD blocks"""

    def test_parses_valid_blocks_and_skips_broken_ones(self):
        html = """
        <script type="application/ld+json">{"@type": "JobPosting", "title": "SRE"}</script>
        <script type="application/ld+json">{not json at all</script>
        <script type="application/ld+json">[{"@type": "Organization"}]</script>
        <script>var ignored = {"@type": "Nope"};</script>
        """
        data = HtmlExtractor().extract_structured_data(html)
        assert data == [{"@type": "JobPosting", "title": "SRE"}, [{"@type": "Organization"}]]

class TestTableExtraction:
    """Unit tests for table parsing"""

    def test_thead_headers(self):
        html = """
        <table class="benefits">
            <thead><tr><th>Benefit</th><th>Value</th></tr></thead>
            <tbody>
                <tr><td>Vacation</td><td>30 days</td></tr>
                <tr><td>Remote</td><td>Yes</td></tr>
            </tbody>
        </table>
        """
        rows = HtmlExtractor().extract_table(html, "table.benefits")
        assert rows == [
            {"Benefit": "Vacation", "Value": "30 days"},
            {"Benefit": "Remote", "Value": "Yes"},
        ]

    def test_leading_th_row_is_header(self):
        html = """
        <table>
            <tr><th>Location</th><th>Salary</th></tr>
            <tr><td>Berlin</td><td>80k</td></tr>
        </table>
        """
        assert HtmlExtractor().extract_table(html) == [{"Location": "Berlin", "Salary": "80k"}]

    def test_synthetic_columns_without_headers(self):
        html = "<table><tr><td>a</td><td>b</td></tr></table>"
        assert HtmlExtractor().extract_table(html) == [{"column_0": "a", "column_1": "b"}]

    def test_synthetic_columns_when_row_is_misaligned(self):
        html = """
        <table>
            <thead><tr><th>Name</th><th>Value</th></tr></thead>
            <tbody>
                <tr><td>only one cell</td></tr>
                <tr><td>x</td><td>y</td></tr>
            </tbody>
        </table>
        """
        assert HtmlExtractor().extract_table(html) == [
            {"column_0": "only one cell"},
            {"Name": "x", "Value": "y"},
        ]

    def test_first_matching_table_only(self):
        html = "<table id='a'><tr><td>1</td></tr></table><table id='b'><tr><td>2</td></tr></table>"
        assert HtmlExtractor().extract_table(html, "table") == [{"column_0": "1"}]
        assert HtmlExtractor().extract_table(html, "#b") == [{"column_0": "2"}]

    def test_no_match_or_bad_selector_is_empty(self):
        html = "<table><tr><td>1</td></tr></table>"
        assert HtmlExtractor().extract_table(html, ".missing") == []
        assert HtmlExtractor().extract_table(html, "table[") == []

class TestExtract:
    """Full extraction behaviour"""

    def test_extract_collects_all_signals(self, job_page_html):
        signals = HtmlExtractor().extract(job_page_html, base_url="https://acme.example/jobs/42")

        assert isinstance(signals, ExtractedSignals)
        assert "Senior Python Engineer" in signals.text
        assert "JobPosting" not in signals.text
        assert signals.metadata["og:title"] == "Senior Python Engineer"
        assert signals.links == ["https://acme.example/apply"]
        assert signals.structured_data == [{"@type": "JobPosting", "title": "Senior Python Engineer"}]
        assert signals.tables == []

    def test_extract_is_deterministic(self, job_page_html):
        extractor = HtmlExtractor()
        first = extractor.extract(job_page_html, base_url="https://acme.example/")
        second = extractor.extract(job_page_html, base_url="https://acme.example/")
        assert first == second
        assert repr(first) == repr(second)

    @pytest.mark.parametrize("html", ["<not even html", "", "</div></div><<>>", "<table><tr><td>unclosed", None])
    def test_malformed_input_does_not_raise(self, html):
        signals = HtmlExtractor().extract(html)
        assert isinstance(signals, ExtractedSignals)
        assert signals.links == []
        assert signals.structured_data == []

    def test_parser_is_injectable(self):
        calls = []

        def parse(html):
            calls.append(html)
            return parse_html(html)

        HtmlExtractor(parse=parse).extract("<p>hi</p>")
        assert calls == ["<p>hi</p>"]

    def test_failing_parser_falls_back_to_empty_document(self):
        def parse(html):
            if html:
                raise RuntimeError("parser exploded")
            return parse_html(html)

        signals = HtmlExtractor(parse=parse).extract("<p>hi</p>")
        assert signals == ExtractedSignals()

class TestContentChecks:
    """Block detection, usability and cleaned text"""

    def test_detects_challenge_markup(self):
        html = '<html><body><div id="cf-chl-widget"></div>Checking your browser</body></html>'
        assert HtmlExtractor().detect_block(html) == "cf-chl-"

    def test_detects_challenge_text(self):
        html = "<html><body><h1>Please verify you are human</h1></body></html>"
        assert HtmlExtractor().detect_block(html) == "verify you are human"

    def test_regular_page_is_not_blocked(self, job_page_html):
        assert HtmlExtractor().detect_block(job_page_html) is None

    def test_is_usable(self, job_page_html):
        extractor = HtmlExtractor()
        assert extractor.is_usable(job_page_html, min_chars=50) is True
        assert extractor.is_usable('<div id="root"></div>', min_chars=50) is False

    def test_clean_body_text_drops_noise(self):
        html = """
        <html><body>
            <nav>Home | Jobs</nav>
            <div class="cookie-banner">We use cookies</div>
            <main>
                <h1>Backend Developer</h1>
                <p>Remote, full time</p>
            </main>
            <footer>Copyright</footer>
        </body></html>
        """
        cleaned = HtmlExtractor().clean_body_text(html)
        assert cleaned == "Backend Developer\nRemote, full time"

    def test_clean_body_text_truncates(self):
        html = "<body><p>" + "word " * 100 + "</p></body>"
        cleaned = HtmlExtractor().clean_body_text(html, max_length=20)
        assert len(cleaned) == 23
        assert cleaned.endswith("...")
