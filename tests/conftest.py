import os
import sys

# Ensure the src directory is on sys.path so tests can import handlers.* and common.*
ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), "..", "src"))
if ROOT not in sys.path:
	sys.path.insert(0, ROOT)

# Shared test doubles live next to this file
TESTS = os.path.abspath(os.path.dirname(__file__))
if TESTS not in sys.path:
	sys.path.insert(0, TESTS)

os.environ.setdefault("AWS_DEFAULT_REGION", "ap-south-1")
os.environ.setdefault("AWS_REGION", "ap-south-1")
if not os.environ.get("AWS_PROFILE") and not os.environ.get("AWS_ACCESS_KEY_ID"):
	os.environ.setdefault("AWS_ACCESS_KEY_ID", "testing")
	os.environ.setdefault("AWS_SECRET_ACCESS_KEY", "testing")

os.environ.setdefault("TABLE_NAME", "test-table")
os.environ.setdefault("DOCUMENT_BUCKET", "test-documents")
