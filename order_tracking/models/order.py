from sqlalchemy import JSON, BigInteger, Boolean, Column, Integer, String

from order_tracking.core.database import Base


class Order(Base):
    __tablename__ = "orders"

    # str(epoch ms) gerado na criação
    id = Column(String(64), primary_key=True)

    company_id = Column(String(64), index=True, nullable=False)
    user_id = Column(String(64), index=True, nullable=True)

    # Local de entrega
    target_type = Column(String(16), nullable=False)  # table / room
    target_number = Column(String(32), nullable=False)

    source = Column(String(16), nullable=False)  # public / internal
    timestamp = Column(BigInteger, nullable=False)

    # Documento: itens e histórico gravados inteiros a cada escrita
    items_json = Column(JSON, nullable=False, default=list)
    history_json = Column(JSON, nullable=False, default=list)

    is_archived = Column(Boolean, nullable=False, default=False, index=True)
    finalized_at = Column(BigInteger, nullable=True)
    waiter_id = Column(String(64), nullable=True)
    customer_name = Column(String(120), nullable=True)

    version = Column(Integer, nullable=False, default=1)

    __mapper_args__ = {"version_id_col": version}
