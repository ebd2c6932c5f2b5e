from sqlalchemy import Column, Integer, String, Text, DateTime, Boolean, ForeignKey, Numeric
from sqlalchemy.orm import declarative_base, relationship
from sqlalchemy.sql import func

Base = declarative_base()

MONEY = Numeric(12, 2)


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    username = Column(String(50), unique=True, index=True, nullable=False)
    email = Column(String(100), unique=True, index=True, nullable=False)
    full_name = Column(String(150))
    hashed_password = Column(String(255), nullable=False)
    is_active = Column(Boolean, default=True)
    is_admin = Column(Boolean, default=False)
    created_at = Column(DateTime, default=func.now())
    updated_at = Column(DateTime, default=func.now(), onupdate=func.now())


class Case(Base):
    __tablename__ = "cases"

    id = Column(Integer, primary_key=True, index=True)
    case_number = Column(String(50), index=True, nullable=False)
    client_name = Column(String(200), index=True, nullable=False)
    status = Column(String(20), nullable=False, default="Abierto")
    type = Column(String(100), nullable=False)
    assigned_lawyer = Column(String(150), nullable=False)
    description = Column(Text)
    opening_date = Column(DateTime)
    payment_status = Column(String(40), nullable=False, default="Pendiente de Facturación")
    amount_paid = Column(MONEY, nullable=False, default=0)
    total_billed = Column(MONEY, nullable=False, default=0)  # Sum of billing item totals
    created_at = Column(DateTime, default=func.now())
    updated_at = Column(DateTime, default=func.now(), onupdate=func.now())

    # Relationships
    billing_items = relationship(
        "CaseBillingItem", back_populates="case", cascade="all, delete-orphan", passive_deletes=True
    )
    tasks = relationship("Task", back_populates="case", passive_deletes=True)
    documents = relationship("Document", back_populates="case", passive_deletes=True)

    @property
    def display_name(self) -> str:
        return f"{self.case_number} - {self.client_name}"


class TaskType(Base):
    __tablename__ = "task_types"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(100), unique=True, nullable=False)
    created_at = Column(DateTime, default=func.now())
    updated_at = Column(DateTime, default=func.now(), onupdate=func.now())


class Task(Base):
    __tablename__ = "tasks"

    id = Column(Integer, primary_key=True, index=True)
    task_name = Column(String(200), nullable=False)
    type = Column(String(100), nullable=False)  # TaskType name
    start_date = Column(DateTime)
    due_date = Column(DateTime, index=True, nullable=False)
    priority = Column(String(10), nullable=False, default="Media")
    status = Column(String(20), nullable=False, default="Pendiente")
    case_id = Column(Integer, ForeignKey("cases.id", ondelete="SET NULL"), index=True)
    case_name = Column(String(260))  # Denormalized "<case_number> - <client_name>"
    description = Column(Text)
    created_at = Column(DateTime, default=func.now())
    updated_at = Column(DateTime, default=func.now(), onupdate=func.now())

    # Relationships
    case = relationship("Case", back_populates="tasks")


class BillableItem(Base):
    __tablename__ = "billable_items"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(150), nullable=False)
    price = Column(MONEY, nullable=False)
    description = Column(String(500))
    created_at = Column(DateTime, default=func.now())
    updated_at = Column(DateTime, default=func.now(), onupdate=func.now())


class CaseBillingItem(Base):
    __tablename__ = "case_billing_items"

    id = Column(Integer, primary_key=True, index=True)
    case_id = Column(Integer, ForeignKey("cases.id", ondelete="CASCADE"), index=True, nullable=False)
    billable_item_id = Column(Integer, ForeignKey("billable_items.id", ondelete="SET NULL"))
    name = Column(String(150), nullable=False)  # Denormalized from BillableItem
    price_at_time_of_billing = Column(MONEY, nullable=False)
    quantity = Column(Integer, nullable=False, default=1)
    total = Column(MONEY, nullable=False)  # price_at_time_of_billing * quantity
    created_at = Column(DateTime, default=func.now())
    updated_at = Column(DateTime, default=func.now(), onupdate=func.now())

    # Relationships
    case = relationship("Case", back_populates="billing_items")


class Document(Base):
    __tablename__ = "documents"

    id = Column(Integer, primary_key=True, index=True)
    file_name = Column(String(255), nullable=False)
    file_type = Column(String(150), nullable=False)  # MIME type
    file_url = Column(Text, nullable=False)
    storage_path = Column(String(500), nullable=False)  # Blob key, used for deletion
    case_id = Column(Integer, ForeignKey("cases.id", ondelete="SET NULL"), index=True)
    case_name = Column(String(260))
    document_type = Column(String(100))  # e.g. "Contrato", "Demanda"
    version = Column(Integer, nullable=False, default=1)
    description = Column(Text)
    uploaded_by = Column(String(50))
    file_size = Column(Integer)
    created_at = Column(DateTime, default=func.now())
    updated_at = Column(DateTime, default=func.now(), onupdate=func.now())

    # Relationships
    case = relationship("Case", back_populates="documents")
