from typing import Literal, Optional

from pydantic import Field

from .common import CamelModel

ClientStatus = Literal["active", "inactive"]

_EMAIL_PATTERN = r"^[^@\s]+@[^@\s]+\.[^@\s]+$"

ADDRESS_PARTS = ("street", "city", "state", "postal_code", "country")


class Address(CamelModel):
    street: str = ""
    city: str = ""
    state: str = ""
    postal_code: str = ""
    country: str = ""

    def columns(self, prefix: str) -> dict:
        """Flatten to ``<prefix>_address_<part>`` columns."""
        return {f"{prefix}_address_{part}": getattr(self, part) for part in ADDRESS_PARTS}

    @classmethod
    def from_row(cls, row: dict, prefix: str) -> "Address":
        return cls(**{part: row[f"{prefix}_address_{part}"] or "" for part in ADDRESS_PARTS})


class ClientInput(CamelModel):
    """
    A client as created through the API.
    Tax identifiers (GST / MSME / PAN) are free-form; only presence matters.
    """
    company: str = Field(min_length=1)
    contact_person: str = Field(min_length=1)
    email: str = Field(pattern=_EMAIL_PATTERN)
    phone: str = Field(min_length=3)
    status: ClientStatus
    gst_number: str = ""
    msme_number: str = ""
    pan_number: str = ""
    billing_address: Address
    shipping_address: Address
    notes: str = ""
    base_currency: str = Field(min_length=1)


class ClientUpdate(CamelModel):
    """Partial client update; an address, when sent, is replaced whole."""
    company: Optional[str] = Field(default=None, min_length=1)
    contact_person: Optional[str] = Field(default=None, min_length=1)
    email: Optional[str] = Field(default=None, pattern=_EMAIL_PATTERN)
    phone: Optional[str] = Field(default=None, min_length=3)
    status: Optional[ClientStatus] = None
    gst_number: Optional[str] = None
    msme_number: Optional[str] = None
    pan_number: Optional[str] = None
    billing_address: Optional[Address] = None
    shipping_address: Optional[Address] = None
    notes: Optional[str] = None
    base_currency: Optional[str] = Field(default=None, min_length=1)


class Client(CamelModel):
    id: str
    company: str
    contact_person: str
    email: str
    phone: str
    status: str
    gst_number: str = ""
    msme_number: str = ""
    pan_number: str = ""
    billing_address: Address
    shipping_address: Address
    notes: str = ""
    base_currency: str
    created_at: str
    updated_at: str

    @classmethod
    def from_row(cls, row: dict) -> "Client":
        return cls(
            id=row["id"],
            company=row["company"],
            contact_person=row["contact_person"],
            email=row["email"],
            phone=row["phone"],
            status=row["status"],
            gst_number=row["gst_number"] or "",
            msme_number=row["msme_number"] or "",
            pan_number=row["pan_number"] or "",
            billing_address=Address.from_row(row, "billing"),
            shipping_address=Address.from_row(row, "shipping"),
            notes=row["notes"] or "",
            base_currency=row["base_currency"],
            created_at=row["created_at"],
            updated_at=row["updated_at"] or row["created_at"],
        )
