from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import StaticPool
import logging
from .config import settings

logger = logging.getLogger(__name__)

DEFAULT_TASK_TYPES = ["Audiencia", "Reunión con cliente", "Presentación de escrito", "Plazo procesal", "Investigación"]

database_url = settings.sqlalchemy_database_url
is_sqlite = database_url.startswith("sqlite")

# Create SQLAlchemy engine
engine_kwargs = {"echo": settings.debug}
if is_sqlite:
    engine_kwargs["connect_args"] = {"check_same_thread": False}
    if database_url in ("sqlite://", "sqlite:///:memory:"):
        engine_kwargs["poolclass"] = StaticPool
else:
    engine_kwargs["pool_pre_ping"] = True

engine = create_engine(database_url, **engine_kwargs)

if is_sqlite:
    @event.listens_for(engine, "connect")
    def _enable_sqlite_foreign_keys(dbapi_connection, connection_record):
        # SQLite ignores ON DELETE clauses unless this is set per connection
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

# Create SessionLocal class
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

# Create Base class
from .models.database import Base


def create_tables():
    """Create all database tables."""
    try:
        Base.metadata.create_all(bind=engine)
        logger.info("Database tables created successfully")
    except Exception as e:
        logger.error(f"Error creating database tables: {str(e)}")
        raise


def get_db() -> Session:
    """Dependency to get database session."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def seed_defaults(db: Session):
    """Create the default admin user and task types when missing."""
    from .models.database import User, TaskType
    from .auth import get_password_hash

    admin_user = db.query(User).filter(User.username == settings.default_admin_username).first()
    if not admin_user:
        admin_user = User(
            username=settings.default_admin_username,
            email=settings.default_admin_email,
            full_name="Administrator",
            hashed_password=get_password_hash(settings.default_admin_password),
            is_admin=True,
            is_active=True
        )
        db.add(admin_user)
        logger.info("Default admin user created")

    if db.query(TaskType).count() == 0:
        for name in DEFAULT_TASK_TYPES:
            db.add(TaskType(name=name))
        logger.info(f"Seeded {len(DEFAULT_TASK_TYPES)} default task types")

    db.commit()


def init_db():
    """Initialize database with default data."""
    try:
        create_tables()

        db = SessionLocal()
        try:
            seed_defaults(db)
        finally:
            db.close()

    except Exception as e:
        logger.error(f"Error initializing database: {str(e)}")
        raise
