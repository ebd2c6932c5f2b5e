from pydantic import AfterValidator, BaseModel, ConfigDict, EmailStr, Field, field_validator, model_validator
from typing import Annotated, Optional, List, Dict
from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum


def to_naive_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Timestamps are stored as naive UTC."""
    if value is not None and value.tzinfo is not None:
        return value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


UtcDatetime = Annotated[datetime, AfterValidator(to_naive_utc)]


class CaseStatus(str, Enum):
    OPEN = "Abierto"
    CLOSED = "Cerrado"
    PENDING = "Pendiente"
    ARCHIVED = "Archivado"


class CasePaymentStatus(str, Enum):
    PENDING_INVOICE = "Pendiente de Facturación"
    INVOICED = "Facturado - Pendiente de Pago"
    PARTIAL_PAYMENT = "Abono Realizado"
    PAID = "Pagado Completo"
    VOID = "Anulado"


class TaskPriority(str, Enum):
    HIGH = "Alta"
    MEDIUM = "Media"
    LOW = "Baja"


class TaskStatus(str, Enum):
    PENDING = "Pendiente"
    COMPLETED = "Completada"


class ClientStatus(str, Enum):
    ACTIVE = "Activo"
    INACTIVE = "Inactivo"


# User Schemas
class UserCreate(BaseModel):
    username: str = Field(..., min_length=3, max_length=50)
    email: EmailStr
    full_name: Optional[str] = Field(None, max_length=150)
    password: str = Field(..., min_length=8)


class UserResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    username: str
    email: str
    full_name: Optional[str] = None
    is_active: bool
    is_admin: bool
    created_at: datetime


class UserLogin(BaseModel):
    username: str
    password: str


class PasswordChange(BaseModel):
    current_password: str
    new_password: str = Field(..., min_length=8)


class Token(BaseModel):
    access_token: str
    token_type: str


# Case Schemas
class CaseBase(BaseModel):
    model_config = ConfigDict(use_enum_values=True, validate_default=True)

    case_number: str = Field(..., min_length=1, max_length=50)
    client_name: str = Field(..., min_length=1, max_length=200)
    type: str = Field(..., min_length=1, max_length=100)
    status: CaseStatus = CaseStatus.OPEN
    assigned_lawyer: str = Field(..., min_length=1, max_length=150)
    description: Optional[str] = None
    opening_date: Optional[UtcDatetime] = None
    payment_status: CasePaymentStatus = CasePaymentStatus.PENDING_INVOICE
    amount_paid: Decimal = Field(default=Decimal("0"), ge=0)


class CaseCreate(CaseBase):
    pass


class CaseUpdate(CaseBase):
    pass


class CaseResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    case_number: str
    client_name: str
    type: str
    status: CaseStatus
    assigned_lawyer: str
    description: Optional[str] = None
    opening_date: Optional[datetime] = None
    payment_status: CasePaymentStatus
    amount_paid: float
    total_billed: float
    created_at: datetime
    updated_at: Optional[datetime] = None


class CaseOption(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    case_number: str
    client_name: str


# Task Type Schemas
class TaskTypeCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)

    @field_validator("name")
    @classmethod
    def strip_name(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("Task type name cannot be blank")
        return value


class TaskTypeResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    created_at: datetime
    updated_at: Optional[datetime] = None


# Task Schemas
class TaskBase(BaseModel):
    model_config = ConfigDict(use_enum_values=True, validate_default=True)

    task_name: str = Field(..., min_length=1, max_length=200)
    type: str = Field(..., min_length=1, max_length=100)
    start_date: Optional[UtcDatetime] = None
    due_date: UtcDatetime
    priority: TaskPriority = TaskPriority.MEDIUM
    status: TaskStatus = TaskStatus.PENDING
    case_id: Optional[int] = None
    description: Optional[str] = None

    @model_validator(mode="after")
    def check_date_order(self):
        if self.start_date and self.due_date < self.start_date:
            raise ValueError("due_date cannot be earlier than start_date")
        return self


class TaskCreate(TaskBase):
    pass


class TaskUpdate(TaskBase):
    pass


class TaskResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    task_name: str
    type: str
    start_date: Optional[datetime] = None
    due_date: datetime
    priority: TaskPriority
    status: TaskStatus
    case_id: Optional[int] = None
    case_name: Optional[str] = None
    description: Optional[str] = None
    created_at: datetime
    updated_at: Optional[datetime] = None


class CalendarDay(BaseModel):
    date: str  # yyyy-mm-dd
    pending: int
    completed: int


class TaskCalendar(BaseModel):
    year: int
    month: int
    days: List[CalendarDay]


# Billing Schemas
class BillableItemCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=150)
    price: Decimal = Field(..., gt=0)
    description: Optional[str] = Field(None, max_length=500)


class BillableItemResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    price: float
    description: Optional[str] = None
    created_at: datetime
    updated_at: Optional[datetime] = None


class CaseBillingItemCreate(BaseModel):
    billable_item_id: int
    quantity: int = Field(default=1, ge=1)
    price_override: Optional[Decimal] = Field(None, gt=0)


class CaseBillingItemResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    case_id: int
    billable_item_id: Optional[int] = None
    name: str
    price_at_time_of_billing: float
    quantity: int
    total: float
    created_at: datetime


class TotalBilledResponse(BaseModel):
    case_id: int
    total_billed: float


# Document Schemas
class DocumentResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    file_name: str
    file_type: str
    file_url: str
    storage_path: str
    case_id: Optional[int] = None
    case_name: Optional[str] = None
    document_type: Optional[str] = None
    version: int
    description: Optional[str] = None
    uploaded_by: Optional[str] = None
    file_size: Optional[int] = None
    created_at: datetime


class SummarizeDataUriRequest(BaseModel):
    document_data_uri: str = Field(..., pattern=r"^data:[\w.+-]+/[\w.+-]+;base64,")


class SummaryResponse(BaseModel):
    summary: str


# Dashboard Schemas
class DashboardSummary(BaseModel):
    active_cases: int
    clients: int
    total_billed: float
    total_collected: float
    pending_payment: float


class DashboardResponse(BaseModel):
    summary: DashboardSummary
    upcoming_tasks: List[TaskResponse]
    recent_cases: List[CaseResponse]


# Client Schemas
class ClientResponse(BaseModel):
    name: str
    initials: str
    status: ClientStatus
    case_count: int
    open_case_count: int
    total_billed: float
    amount_paid: float
    pending_balance: float


class ClientDetailResponse(ClientResponse):
    cases: List[CaseResponse]


# Health Check Schema
class HealthCheck(BaseModel):
    status: str
    timestamp: float
    version: str
    services: Dict[str, str]
