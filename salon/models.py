from sqlalchemy import (
    JSON,
    Boolean,
    CheckConstraint,
    Column,
    Date,
    DateTime,
    ForeignKey,
    Integer,
    Numeric,
    String,
    Text,
    Time,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from .database import Base
from .domain.appointments.lifecycle import AppointmentStatus
from .domain.scheduling.slots import SlotStatus


class Service(Base):
    __tablename__ = "services"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    duration_minutes = Column(Integer, nullable=False)
    price = Column(Integer, nullable=False)  # Whole currency units
    is_active = Column(Boolean, default=True, nullable=False)
    requires_deposit = Column(Boolean, default=False, nullable=False)
    deposit_percentage = Column(Numeric(5, 2), default=0, nullable=False)  # 0-100
    created_at = Column(DateTime, server_default=func.now())

    __table_args__ = (
        CheckConstraint("duration_minutes > 0", name="ck_services_duration_positive"),
        CheckConstraint(
            "deposit_percentage >= 0 AND deposit_percentage <= 100",
            name="ck_services_deposit_percentage",
        ),
    )

    employee_links = relationship("EmployeeService", back_populates="service")


class Employee(Base):
    __tablename__ = "employees"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False)
    email = Column(String(255), nullable=True)
    phone = Column(String(50), nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)
    specialties = Column(JSON, default=list, nullable=True)
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime, server_default=func.now())

    service_links = relationship("EmployeeService", back_populates="employee")
    working_intervals = relationship(
        "WorkingInterval", back_populates="employee", order_by="WorkingInterval.day_of_week"
    )


class EmployeeService(Base):
    """Qualification of an employee to perform a service"""

    __tablename__ = "employee_services"

    id = Column(Integer, primary_key=True, index=True)
    employee_id = Column(Integer, ForeignKey("employees.id"), nullable=False, index=True)
    service_id = Column(Integer, ForeignKey("services.id"), nullable=False, index=True)
    is_active = Column(Boolean, default=True, nullable=False)

    __table_args__ = (UniqueConstraint("employee_id", "service_id", name="uq_employee_service"),)

    employee = relationship("Employee", back_populates="service_links")
    service = relationship("Service", back_populates="employee_links")


class WorkingInterval(Base):
    """An employee's working hours on one weekday (1 = Monday ... 7 = Sunday)"""

    __tablename__ = "working_intervals"

    id = Column(Integer, primary_key=True, index=True)
    employee_id = Column(Integer, ForeignKey("employees.id"), nullable=False, index=True)
    day_of_week = Column(Integer, nullable=False)
    start_time = Column(Time, nullable=False)
    end_time = Column(Time, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    notes = Column(Text, nullable=True)
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    # One interval per employee per weekday; edits update the row, removal deactivates it
    __table_args__ = (
        UniqueConstraint("employee_id", "day_of_week", name="uq_working_interval_day"),
        CheckConstraint("day_of_week BETWEEN 1 AND 7", name="ck_working_interval_day"),
        CheckConstraint("start_time < end_time", name="ck_working_interval_range"),
    )

    employee = relationship("Employee", back_populates="working_intervals")


class Client(Base):
    __tablename__ = "clients"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False)
    whatsapp = Column(String(50), unique=True, index=True, nullable=False)
    email = Column(String(255), nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, server_default=func.now())

    appointments = relationship("Appointment", back_populates="client")


class TimeSlot(Base):
    """
    A materialized slot. Rows exist for pre-generated slots, blocked windows and
    every reservation; the unique key on (employee_id, date, start_time) is what
    makes two concurrent reservations of the same slot impossible.
    """

    __tablename__ = "time_slots"

    id = Column(Integer, primary_key=True, index=True)
    service_id = Column(Integer, ForeignKey("services.id"), nullable=True, index=True)
    employee_id = Column(Integer, ForeignKey("employees.id"), nullable=True, index=True)
    date = Column(Date, nullable=False, index=True)
    start_time = Column(Time, nullable=False)
    end_time = Column(Time, nullable=False)
    status = Column(String(20), default=SlotStatus.AVAILABLE.value, nullable=False, index=True)
    appointment_id = Column(Integer, ForeignKey("appointments.id"), nullable=True, unique=True)
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime, server_default=func.now())

    __table_args__ = (
        UniqueConstraint("employee_id", "date", "start_time", name="uq_time_slot_employee_start"),
        CheckConstraint("start_time < end_time", name="ck_time_slot_range"),
    )

    service = relationship("Service")
    employee = relationship("Employee")
    appointment = relationship("Appointment", back_populates="slot")

    @property
    def duration_minutes(self) -> int:
        start = self.start_time.hour * 60 + self.start_time.minute
        end = self.end_time.hour * 60 + self.end_time.minute
        return end - start


class Appointment(Base):
    __tablename__ = "appointments"

    id = Column(Integer, primary_key=True, index=True)
    service_id = Column(Integer, ForeignKey("services.id"), nullable=False, index=True)
    client_id = Column(Integer, ForeignKey("clients.id"), nullable=False, index=True)
    employee_id = Column(Integer, ForeignKey("employees.id"), nullable=True, index=True)
    scheduled_at = Column(DateTime, nullable=False, index=True)
    ends_at = Column(DateTime, nullable=False)
    status = Column(
        String(30), default=AppointmentStatus.PENDING_DEPOSIT.value, nullable=False, index=True
    )
    # Prices are copied from the service at booking time; later service edits don't apply
    total_price = Column(Integer, nullable=False)
    deposit_amount = Column(Integer, default=0, nullable=False)
    deposit_paid = Column(Boolean, default=False, nullable=False)
    deposit_paid_at = Column(DateTime, nullable=True)
    reschedule_count = Column(Integer, default=0, nullable=False)
    special_requests = Column(Text, nullable=True)
    reference_photo = Column(String(500), nullable=True)
    admin_notes = Column(Text, nullable=True)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    __table_args__ = (
        CheckConstraint("scheduled_at < ends_at", name="ck_appointment_range"),
        CheckConstraint("reschedule_count >= 0", name="ck_appointment_reschedule_count"),
    )

    service = relationship("Service")
    client = relationship("Client", back_populates="appointments")
    employee = relationship("Employee")
    slot = relationship("TimeSlot", back_populates="appointment", uselist=False)
    promotion_links = relationship("AppointmentPromotion", back_populates="appointment")
    payments = relationship("Payment", back_populates="appointment")


class Promotion(Base):
    __tablename__ = "promotions"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    code = Column(String(50), unique=True, index=True, nullable=False)
    type = Column(String(20), nullable=False)  # percentage, fixed
    value = Column(Numeric(10, 2), nullable=False)
    min_amount = Column(Numeric(10, 2), nullable=True)
    max_discount = Column(Numeric(10, 2), nullable=True)
    usage_limit = Column(Integer, nullable=True)
    used_count = Column(Integer, default=0, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    starts_at = Column(DateTime, nullable=True)
    expires_at = Column(DateTime, nullable=True)
    applicable_days = Column(JSON, default=list, nullable=True)  # ISO weekdays, empty = all
    applicable_services = Column(JSON, default=list, nullable=True)  # Service ids, empty = all
    created_at = Column(DateTime, server_default=func.now())

    __table_args__ = (
        CheckConstraint(
            "usage_limit IS NULL OR used_count <= usage_limit", name="ck_promotion_usage"
        ),
    )

    appointment_links = relationship("AppointmentPromotion", back_populates="promotion")


class AppointmentPromotion(Base):
    __tablename__ = "appointment_promotions"

    id = Column(Integer, primary_key=True, index=True)
    appointment_id = Column(Integer, ForeignKey("appointments.id"), nullable=False, index=True)
    promotion_id = Column(Integer, ForeignKey("promotions.id"), nullable=False, index=True)
    discount_amount = Column(Integer, nullable=False)
    usage_counted = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime, server_default=func.now())

    __table_args__ = (
        UniqueConstraint("appointment_id", "promotion_id", name="uq_appointment_promotion"),
    )

    appointment = relationship("Appointment", back_populates="promotion_links")
    promotion = relationship("Promotion", back_populates="appointment_links")


class Payment(Base):
    """Deposit payments reported by the payment collaborator or recorded by an admin"""

    __tablename__ = "payments"

    id = Column(Integer, primary_key=True, index=True)
    appointment_id = Column(Integer, ForeignKey("appointments.id"), nullable=False, index=True)
    amount = Column(Integer, nullable=False)
    currency = Column(String(10), default="ARS")
    payment_method = Column(String(50), nullable=True)  # card, transfer, cash, ...
    payment_provider = Column(String(50), nullable=True)  # mercadopago, stripe, manual
    provider_payment_id = Column(String(255), unique=True, nullable=True, index=True)
    # pending, processing, completed, failed, refunded
    status = Column(String(20), default="pending", nullable=False, index=True)
    payment_metadata = Column("metadata", JSON, nullable=True)
    paid_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, server_default=func.now())

    appointment = relationship("Appointment", back_populates="payments")
