import os
import tempfile
import pytest
import sqlite3
from app.cache import db as cache_db
from app.services import acquire as acquire_service

@pytest.fixture(autouse=True)
def setup_test_environment():
    """Point the repository at a temporary database and reset the shared coordinator"""
    # Store original values
    original_db_path = cache_db.DATABASE_PATH
    original_coordinator = acquire_service._coordinator

    # Create temporary database for tests
    temp_db = tempfile.NamedTemporaryFile(suffix='.sqlite', delete=False)
    temp_db_path = temp_db.name
    temp_db.close()

    cache_db.DATABASE_PATH = temp_db_path
    acquire_service._coordinator = None

    # Initialize test database
    cache_db.init_db()

    yield

    # Restore original values
    cache_db.DATABASE_PATH = original_db_path
    acquire_service._coordinator = original_coordinator

    # Cleanup temporary database - close all connections first (Windows fix)
    try:
        conn = sqlite3.connect(temp_db_path)
        conn.close()

        import time
        time.sleep(0.1)

        if os.path.exists(temp_db_path):
            os.unlink(temp_db_path)
    except OSError:
        # If cleanup fails, it's not critical for tests
        pass


class RecordingSleep:
    """Async sleep stand-in that records requested durations"""

    def __init__(self):
        self.calls = []

    async def __call__(self, seconds):
        self.calls.append(seconds)


@pytest.fixture
def recording_sleep():
    return RecordingSleep()


JOB_PAGE_HTML = """
<html>
<head>
    <title>Senior Python Engineer - Acme Corp</title>
    <meta name="description" content="Join Acme as a Senior Python Engineer">
    <meta property="og:title" content="Senior Python Engineer">
    <meta name="twitter:card" content="summary">
    <script type="application/ld+json">{"@type": "JobPosting", "title": "Senior Python Engineer"}</script>
</head>
<body>
    <h1>Senior Python Engineer</h1>
    <p>Acme Corp is hiring a senior engineer to build resilient data pipelines and APIs.
    You will work with Python, asyncio and PostgreSQL in a remote-friendly team.</p>
    <a href="/apply">Apply now</a>
</body>
</html>
"""


@pytest.fixture
def job_page_html():
    return JOB_PAGE_HTML
