from courier_app.core.config import settings
from courier_app.core.database import Base, engine

# Импортируем модели чтобы они попали в metadata перед созданием таблиц
from courier_app.models import courier  # noqa: F401
from courier_app.models import order  # noqa: F401
from courier_app.models import restaurant  # noqa: F401


async def init_db():
    """Инициализация базы данных и создание таблиц"""
    # Гарантируем наличие директории для файла базы данных
    settings.DATA_DIR.mkdir(parents=True, exist_ok=True)

    async with engine.begin() as conn:
        # Создаем все таблицы
        await conn.run_sync(Base.metadata.create_all)
