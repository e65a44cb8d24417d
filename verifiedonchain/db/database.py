"""
Database configuration and connection management for the profile directory.
"""

import logging
from contextlib import contextmanager
from typing import Any, Dict, Optional

from sqlalchemy import create_engine, text, Column, String, Text, BigInteger, JSON, Index, func
from sqlalchemy.orm import declarative_base, sessionmaker
from sqlalchemy.pool import QueuePool, StaticPool

logger = logging.getLogger(__name__)

# Database Models Base
Base = declarative_base()


def mask_db_url(url: str) -> str:
    """Hide the password part of a database URL for logging."""
    import re
    return re.sub(r'://([^:/]+):([^@]+)@', r'://\1:***@', url or '')


class DatabaseConfig:
    """Database configuration management"""

    def __init__(self, database_url: Optional[str] = None, echo: bool = False):
        if database_url is None:
            from verifiedonchain.config.settings import settings
            database_url = settings.DATABASE_URL
        self.database_url = database_url
        self.echo = echo
        self.engine = None
        self.SessionLocal = None
        logger.info(f"Database URL configured: {mask_db_url(self.database_url)}")

    def initialize_engine(self):
        """Initialize SQLAlchemy engine with connection pooling"""
        if self.engine is None:
            if self.database_url.startswith('sqlite'):
                # One shared connection so in-memory databases survive across sessions
                self.engine = create_engine(
                    self.database_url,
                    poolclass=StaticPool,
                    connect_args={'check_same_thread': False},
                    echo=self.echo,
                )
            else:
                self.engine = create_engine(
                    self.database_url,
                    poolclass=QueuePool,
                    pool_size=10,
                    max_overflow=20,
                    pool_pre_ping=True,
                    pool_recycle=3600,
                    echo=self.echo,
                )

            self.SessionLocal = sessionmaker(
                autocommit=False,
                autoflush=False,
                expire_on_commit=False,
                bind=self.engine
            )

            logger.info("Database engine initialized successfully")

        return self.engine

    @contextmanager
    def get_session(self):
        """Get database session with automatic cleanup"""
        if self.SessionLocal is None:
            self.initialize_engine()

        session = self.SessionLocal()
        try:
            yield session
            session.commit()
        except Exception as e:
            session.rollback()
            logger.error(f"Database session error: {e}")
            raise
        finally:
            session.close()

    def dispose(self) -> None:
        if self.engine is not None:
            self.engine.dispose()
            self.engine = None
            self.SessionLocal = None


class ProfileRecord(Base):
    """Claimed username linked to one wallet address"""
    __tablename__ = 'profiles'

    id = Column(String(64), primary_key=True)
    username = Column(String(20), nullable=False)
    address = Column(String(128), nullable=False)
    chain = Column(String(8), nullable=False)
    created_at = Column(BigInteger, nullable=False)  # epoch milliseconds
    logo_url = Column(Text)
    socials = Column(JSON)

    __table_args__ = (
        Index('ux_profiles_username_lower', func.lower(username), unique=True),
    )

    def __repr__(self):
        return f"<ProfileRecord(username='{self.username}', chain='{self.chain}')>"


class DatabaseManager:
    """High-level database operations manager"""

    def __init__(self, config: Optional[DatabaseConfig] = None):
        self.db_config = config or DatabaseConfig()

    def initialize_database(self) -> bool:
        """Create the profiles table if it does not exist yet"""
        try:
            engine = self.db_config.initialize_engine()
            Base.metadata.create_all(bind=engine)
            logger.info("Database initialization completed successfully")
            return True
        except Exception as e:
            logger.error(f"Database initialization failed: {e}")
            return False

    def get_health_status(self) -> Dict[str, Any]:
        """Get database health status"""
        try:
            engine = self.db_config.initialize_engine()
            with engine.connect() as conn:
                conn.execute(text("SELECT 1"))
                try:
                    profile_count = conn.execute(text("SELECT COUNT(*) FROM profiles")).fetchone()[0]
                except Exception:
                    profile_count = None

            pool = engine.pool
            return {
                'status': 'healthy',
                'dialect': engine.dialect.name,
                'connection_pool_size': pool.size() if hasattr(pool, 'size') else 0,
                'profile_count': profile_count,
            }
        except Exception as e:
            logger.error(f"Database health check failed: {e}")
            return {
                'status': 'unhealthy',
                'error': str(e)
            }
