from pydantic import BaseModel, ConfigDict, Field
from typing import List, Optional

# Required delivery fields; empty strings are rejected before any write
class AddressCreate(BaseModel):
    full_name: str = Field(min_length=1)
    phone: str = Field(min_length=1)
    address_line1: str = Field(min_length=1)
    address_line2: Optional[str] = None
    city: str = Field(min_length=1)
    state: str = Field(min_length=1)
    pincode: str = Field(min_length=1)

# Partial update, only the sent fields change
class AddressUpdate(BaseModel):
    full_name: Optional[str] = Field(None, min_length=1)
    phone: Optional[str] = Field(None, min_length=1)
    address_line1: Optional[str] = Field(None, min_length=1)
    address_line2: Optional[str] = None
    city: Optional[str] = Field(None, min_length=1)
    state: Optional[str] = Field(None, min_length=1)
    pincode: Optional[str] = Field(None, min_length=1)

class AddressOut(AddressCreate):
    model_config = ConfigDict(from_attributes=True)

    id: int
    is_default: bool

# Address step: saved addresses (default first) and the preselected one
class AddressList(BaseModel):
    addresses: List[AddressOut]
    selected_address_id: Optional[int] = None
    total_amount: float

class AddressSelect(BaseModel):
    address_id: Optional[int] = None

# Where the client goes next and the state it carries along
class NavigationOut(BaseModel):
    next: str
    state: dict
