"""
Shared pytest configuration

Points the application at a throwaway SQLite database and upload directory
before any internhub module reads its configuration.
"""
import os
import tempfile

_TEST_ROOT = tempfile.mkdtemp(prefix="internhub-tests-")

os.environ["DATABASE_URL"] = f"sqlite:///{os.path.join(_TEST_ROOT, 'internhub.db')}"
os.environ["UPLOAD_DIR"] = os.path.join(_TEST_ROOT, "uploads")
os.environ["SCHEDULER_ENABLED"] = "false"
os.environ.setdefault("LOG_LEVEL", "WARNING")
