"""
Plan record models - the satellite tables hanging off a plan
"""

from sqlalchemy import Column, String, DateTime, ForeignKey, Boolean, Text, Uuid
from sqlalchemy.sql import func
from finalwishes.utils.database import Base, JSONType, utcnow
import uuid


def _plan_fk(unique: bool = False):
    return Column(Uuid, ForeignKey("plans.id", ondelete="CASCADE"), nullable=False, index=True, unique=unique)


def _created_at():
    return Column(DateTime(timezone=True), default=utcnow, server_default=func.now())


def _updated_at():
    return Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, server_default=func.now())


class PersonalProfile(Base):
    __tablename__ = "personal_profiles"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    plan_id = _plan_fk(unique=True)  # one profile per plan

    full_name = Column(String(255))
    maiden_name = Column(String(255))
    dob = Column(String(20))
    birthplace = Column(String(255))
    address = Column(Text)
    citizenship = Column(String(100))
    marital_status = Column(String(50))
    partner_name = Column(String(255))
    ex_spouse_name = Column(String(255))
    child_names = Column(JSONType)
    father_name = Column(String(255))
    mother_name = Column(String(255))
    religion = Column(String(100))
    hobbies = Column(Text)
    accomplishments = Column(Text)
    remembered = Column(Text)
    ssn = Column(String(20))

    # Military service
    vet_branch = Column(String(100))
    vet_rank = Column(String(100))
    vet_serial = Column(String(100))
    vet_war = Column(String(100))
    vet_entry = Column(String(20))
    vet_discharge = Column(String(20))

    created_at = _created_at()
    updated_at = _updated_at()


class ContactToNotify(Base):
    __tablename__ = "contacts_notify"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    plan_id = _plan_fk()
    name = Column(String(255), nullable=False)
    relationship = Column(String(100))
    contact = Column(String(255))
    auto_injected = Column(Boolean, default=False)
    created_at = _created_at()
    updated_at = _updated_at()


class Pet(Base):
    __tablename__ = "pets"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    plan_id = _plan_fk()
    name = Column(String(255), nullable=False)
    breed = Column(String(255))
    caregiver = Column(String(255))
    vet_contact = Column(String(255))
    care_instructions = Column(Text)
    created_at = _created_at()
    updated_at = _updated_at()


class InsurancePolicy(Base):
    __tablename__ = "insurance_policies"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    plan_id = _plan_fk()
    company = Column(String(255), nullable=False)
    type = Column(String(50), nullable=False, default="other")  # life, health, home, auto, other
    policy_number = Column(String(100))
    contact_person = Column(String(255))
    phone_or_url = Column(String(255))
    notes = Column(Text)
    created_at = _created_at()
    updated_at = _updated_at()


class Property(Base):
    __tablename__ = "properties"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    plan_id = _plan_fk()
    kind = Column(String(50), nullable=False, default="other")  # primary_home, rental, land, vehicle, other
    address = Column(Text, nullable=False)
    mortgage_bank = Column(String(255))
    manager = Column(String(255))
    notes = Column(Text)
    created_at = _created_at()
    updated_at = _updated_at()


class Message(Base):
    __tablename__ = "messages"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    plan_id = _plan_fk()
    audience = Column(String(255), nullable=False)
    title = Column(String(255))
    body = Column(Text)
    created_at = _created_at()
    updated_at = _updated_at()


class Investment(Base):
    __tablename__ = "investments"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    plan_id = _plan_fk()
    brokerage = Column(String(255), nullable=False)
    account_type = Column(String(100))
    account_number = Column(String(100))
    created_at = _created_at()
    updated_at = _updated_at()


class Debt(Base):
    __tablename__ = "debts"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    plan_id = _plan_fk()
    creditor = Column(String(255), nullable=False)
    debt_type = Column(String(100))
    account_number = Column(String(100))
    created_at = _created_at()
    updated_at = _updated_at()


class BankAccount(Base):
    __tablename__ = "bank_accounts"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    plan_id = _plan_fk()
    bank_name = Column(String(255), nullable=False)
    account_type = Column(String(100))
    account_number = Column(String(100))
    pod = Column(String(255))  # payable-on-death beneficiary
    created_at = _created_at()
    updated_at = _updated_at()


class Business(Base):
    __tablename__ = "businesses"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    plan_id = _plan_fk()
    name = Column(String(255), nullable=False)
    address = Column(Text)
    partnership_info = Column(Text)
    notes = Column(Text)
    created_at = _created_at()
    updated_at = _updated_at()


class FuneralFunding(Base):
    __tablename__ = "funeral_funding"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    plan_id = _plan_fk()
    source = Column(String(255), nullable=False)
    account = Column(String(255))
    created_at = _created_at()
    updated_at = _updated_at()


class ProfessionalContact(Base):
    __tablename__ = "contacts_professional"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    plan_id = _plan_fk()
    role = Column(String(100), nullable=False)  # attorney, accountant, doctor, ...
    name = Column(String(255))
    company = Column(String(255))
    contact = Column(String(255))
    created_at = _created_at()
    updated_at = _updated_at()


# Collection name -> model for every list-valued plan record
PLAN_COLLECTIONS = {
    "contacts": ContactToNotify,
    "pets": Pet,
    "insurance": InsurancePolicy,
    "properties": Property,
    "messages": Message,
    "investments": Investment,
    "debts": Debt,
    "bank_accounts": BankAccount,
    "businesses": Business,
    "funeral_funding": FuneralFunding,
    "professional_contacts": ProfessionalContact,
}
