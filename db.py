# Database wiring.
# One Database object is built at startup and handed to whoever needs it;
# nothing here connects at import time.
import threading
from contextlib import contextmanager

from sqlalchemy import create_engine
from sqlalchemy.orm import declarative_base, sessionmaker

# Every model (table) class inherits from this Base.
Base = declarative_base()


class Database:
    def __init__(self, url: str):
        self.url = url
        connect_args = {}
        if url.startswith("sqlite"):
            # Store writes run on worker threads (asyncio.to_thread)
            connect_args["check_same_thread"] = False
        # echo=False means: don't print SQL statements in the console.
        self.engine = create_engine(url, echo=False, future=True, connect_args=connect_args)
        self.SessionLocal = sessionmaker(bind=self.engine, autoflush=False, autocommit=False, future=True)
        self._init_lock = threading.Lock()
        self._initialized = False

    def create_all(self):
        """Create any missing tables. Safe to call from several threads; runs once."""
        if self._initialized:
            return
        with self._init_lock:
            if self._initialized:
                return
            # Ensure models are imported so SQLAlchemy knows about them
            import models  # noqa: F401
            Base.metadata.create_all(bind=self.engine)
            self._initialized = True

    @contextmanager
    def session(self):
        db = self.SessionLocal()
        try:
            yield db
        finally:
            # no matter what happens (error or success), close the connection
            db.close()

    def dispose(self):
        self.engine.dispose()
