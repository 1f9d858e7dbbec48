import os

# The engine is created when the app module is imported, so the database
# has to be chosen before any test module imports ``app``.
os.environ["TASKBOARD_DATABASE_URI"] = "sqlite://"
os.environ.setdefault("TASKBOARD_SECRET_KEY", "test-secret-key")
