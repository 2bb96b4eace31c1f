from alea.config import configure_logging, load_settings
from alea.database import Base, create_db_engine, create_session_factory, init_db as create_tables
from alea.models import User
from alea.routes.auth import pwd_context


def init_db(reset: bool = False):
    settings = load_settings()
    configure_logging(settings.log_level)
    engine = create_db_engine(settings.database_url)

    if reset:
        print("Dropping all tables...")
        Base.metadata.drop_all(bind=engine)
        print("Tables dropped successfully")

    print("Creating database tables...")
    create_tables(engine)
    print("Tables created successfully")

    db = create_session_factory(engine)()
    try:
        if db.query(User).filter(User.username == "demo").first():
            print("Demo user already exists")
            return

        print("\nCreating users...")
        demo = User(
            username="demo",
            password_hash=pwd_context.hash("demo1234"),
            role="User",
        )
        admin = User(
            username="admin",
            password_hash=pwd_context.hash("admin1234"),
            role="Admin",
        )
        db.add_all([demo, admin])
        db.commit()

        for user in db.query(User).all():
            print(f"- ID: {user.id}, Username: {user.username}, Role: {user.role}")
    finally:
        db.close()
        engine.dispose()


if __name__ == "__main__":
    import sys
    init_db(reset="--reset" in sys.argv)
