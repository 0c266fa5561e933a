from datetime import datetime
from sqlalchemy import Column, String, DateTime, Boolean, JSON
from courier_app.core.database import Base

class Courier(Base):
    __tablename__ = "couriers"

    # Телефон - первичный ключ, по нему курьер входит в приложение
    phone_number = Column(String, primary_key=True, index=True)
    name = Column(String, nullable=True)

    # Последняя известная позиция {"lat": ..., "long": ...}
    location = Column(JSON, nullable=True)
    location_updated_at = Column(DateTime(timezone=True), nullable=True)
    online = Column(Boolean, default=False)

    created_at = Column(DateTime, default=datetime.utcnow)
