import logging
import os
from datetime import datetime, timezone

from dotenv import load_dotenv
from sqlalchemy import JSON, Column, DateTime, ForeignKey, Integer, String, Text, create_engine
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker

load_dotenv()

DB_URL = os.getenv("DATABASE_URL", "sqlite:///./seo_dashboard.db")
FREE_PLAN_LIMIT = 3

# Prices in cents
DEFAULT_PLANS = [
    {"name": "Free", "type": "free", "price": 0, "monthly_limit": 3,
     "description": "Basic SEO analysis with limited features"},
    {"name": "Pro", "type": "basic", "price": 10, "monthly_limit": 25,
     "description": "Comprehensive SEO analysis with all features"},
    {"name": "Teams", "type": "premium", "price": 20, "monthly_limit": 100,
     "description": "Advanced SEO analysis for multiple team members"},
    {"name": "Enterprise", "type": "enterprise", "price": 30, "monthly_limit": 500,
     "description": "Enterprise-grade SEO analysis with unlimited access"},
]


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Base(DeclarativeBase):
    pass


class Plan(Base):
    __tablename__ = "plans"
    id = Column(Integer, primary_key=True)
    name = Column(String(50), nullable=False)
    type = Column(String(20), unique=True, nullable=False)
    price = Column(Integer, nullable=False)
    monthly_limit = Column(Integer, nullable=False)
    description = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow)

    def to_dict(self):
        return {
            "id": self.id, "name": self.name, "type": self.type, "price": self.price,
            "monthly_limit": self.monthly_limit, "description": self.description,
        }


class User(Base):
    __tablename__ = "users"
    id = Column(String(100), primary_key=True)
    email = Column(String(255), unique=True, nullable=False)
    first_name = Column(String(255), nullable=True)
    last_name = Column(String(255), nullable=True)
    current_plan = Column(String(20), default="free")
    monthly_usage = Column(Integer, default=0)
    last_reset_date = Column(DateTime(timezone=True), default=utcnow)
    created_at = Column(DateTime(timezone=True), default=utcnow)
    updated_at = Column(DateTime(timezone=True), default=utcnow)

    def to_dict(self):
        return {
            "id": self.id, "email": self.email, "first_name": self.first_name, "last_name": self.last_name,
            "current_plan": self.current_plan, "monthly_usage": self.monthly_usage,
        }


class SeoAnalysis(Base):
    __tablename__ = "seo_analyses"
    id = Column(Integer, primary_key=True)
    user_id = Column(String(100), ForeignKey("users.id"), nullable=True)
    url = Column(Text, nullable=False)
    tags = Column(JSON, nullable=False)
    score = Column(Integer, nullable=False)
    created_at = Column(DateTime(timezone=True), default=utcnow)

    def to_dict(self):
        return {
            "id": self.id, "user_id": self.user_id, "url": self.url, "tags": self.tags, "score": self.score,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }


engine = create_engine(DB_URL, pool_pre_ping=True)
SessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False)


def init_db(bind=None):
    Base.metadata.create_all(bind=bind or engine)


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


# --- Plans ---

def seed_plans(db: Session) -> int:
    if db.query(Plan).count() > 0:
        logging.info("Plans already exist in the database. Skipping seed.")
        return 0
    db.add_all(Plan(**plan) for plan in DEFAULT_PLANS)
    db.commit()
    logging.info("Plans seeded successfully.")
    return len(DEFAULT_PLANS)


def get_all_plans(db: Session) -> list[Plan]:
    return db.query(Plan).order_by(Plan.price).all()


def get_plan_by_type(db: Session, plan_type: str) -> Plan | None:
    return db.query(Plan).filter(Plan.type == plan_type).first()


# --- Users ---

def get_user(db: Session, user_id: str) -> User | None:
    return db.get(User, user_id)


def get_user_by_email(db: Session, email: str) -> User | None:
    return db.query(User).filter(User.email == email).first()


def create_user(db: Session, user_id: str, email: str, first_name: str | None = None,
                last_name: str | None = None, current_plan: str = "free") -> User:
    """Creates a user, or refreshes the profile of the user already registered with this email."""
    user = get_user_by_email(db, email)
    if user:
        user.first_name = (first_name or user.first_name or "")[:250]
        user.last_name = (last_name or user.last_name or "")[:250]
        user.updated_at = utcnow()
    else:
        user = User(
            id=user_id, email=email,
            first_name=(first_name or "")[:250], last_name=(last_name or "")[:250],
            current_plan=current_plan,
        )
        db.add(user)
    db.commit()
    db.refresh(user)
    return user


def update_user_plan(db: Session, user_id: str, plan_type: str) -> User | None:
    user = get_user(db, user_id)
    if not user:
        return None
    now = utcnow()
    user.current_plan = plan_type
    user.monthly_usage = 0
    user.last_reset_date = now
    user.updated_at = now
    db.commit()
    db.refresh(user)
    return user


def increment_user_usage(db: Session, user_id: str) -> User | None:
    user = get_user(db, user_id)
    if not user:
        return None
    user.monthly_usage = (user.monthly_usage or 0) + 1
    user.updated_at = utcnow()
    db.commit()
    db.refresh(user)
    return user


def check_user_subscription(db: Session, user_id: str) -> dict:
    user = get_user(db, user_id)
    if not user:
        return {"is_subscribed": False, "remaining_usage": 0}

    plan_type = user.current_plan or "free"
    plan = get_plan_by_type(db, plan_type)
    if plan:
        monthly_limit = plan.monthly_limit
    elif plan_type == "free":
        monthly_limit = FREE_PLAN_LIMIT
    else:
        return {"is_subscribed": False, "remaining_usage": 0}

    usage = user.monthly_usage or 0
    return {"is_subscribed": True, "remaining_usage": max(0, monthly_limit - usage)}


def reset_monthly_usage(db: Session, now: datetime | None = None) -> int:
    """Zeroes the usage of every user whose last reset predates the current month."""
    now = now or utcnow()
    first_day_of_month = datetime(now.year, now.month, 1, tzinfo=now.tzinfo)
    users = (
        db.query(User)
        .filter((User.last_reset_date.is_(None)) | (User.last_reset_date < first_day_of_month))
        .filter(User.monthly_usage > 0)
        .all()
    )
    for user in users:
        user.monthly_usage = 0
        user.last_reset_date = now
        user.updated_at = now
    db.commit()
    logging.info(f"Monthly usage reset for {len(users)} user(s).")
    return len(users)


# --- Analyses ---

def create_seo_analysis(db: Session, url: str, tags: dict, score: int, user_id: str | None = None) -> SeoAnalysis:
    analysis = SeoAnalysis(url=url, tags=tags, score=score, user_id=user_id)
    db.add(analysis)
    db.commit()
    db.refresh(analysis)
    return analysis


def get_seo_analysis_by_url(db: Session, url: str) -> SeoAnalysis | None:
    return (
        db.query(SeoAnalysis)
        .filter(SeoAnalysis.url == url)
        .order_by(SeoAnalysis.created_at.desc(), SeoAnalysis.id.desc())
        .first()
    )


def get_recent_seo_analyses(db: Session, limit: int = 10) -> list[SeoAnalysis]:
    return (
        db.query(SeoAnalysis)
        .order_by(SeoAnalysis.created_at.desc(), SeoAnalysis.id.desc())
        .limit(limit)
        .all()
    )


def get_seo_analyses_by_user(db: Session, user_id: str, limit: int = 5) -> list[SeoAnalysis]:
    return (
        db.query(SeoAnalysis)
        .filter(SeoAnalysis.user_id == user_id)
        .order_by(SeoAnalysis.created_at.desc(), SeoAnalysis.id.desc())
        .limit(limit)
        .all()
    )
