from config import Settings
from db import Database


def main():
    # Create all tables defined on Base metadata (includes GameplayLog)
    settings = Settings()
    database = Database(settings.DATABASE_URL)
    database.create_all()
    print(f"Database tables created at {settings.DATABASE_URL}")


if __name__ == "__main__":
    main()
