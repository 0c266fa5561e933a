from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import declarative_base
from courier_app.core.config import settings

# Базовый класс для моделей
Base = declarative_base()

# Движок SQLAlchemy для асинхронной работы
engine = create_async_engine(settings.DATABASE_URL, echo=settings.DB_ECHO)

# Фабрика сессий: сервисы открывают отдельную сессию на каждую операцию
AsyncSessionLocal = async_sessionmaker(
    engine, class_=AsyncSession, expire_on_commit=False
)
