from datetime import datetime
from pydantic import BaseModel, Field
from typing import List, Optional

class RouteIn(BaseModel):
    name: str
    source: str
    destination: str
    distance: int = Field(ge=0)
    basePrice: int = Field(ge=0)

class RoutePatch(BaseModel):
    id: str
    name: Optional[str] = None
    source: Optional[str] = None
    destination: Optional[str] = None
    distance: Optional[int] = Field(default=None, ge=0)
    basePrice: Optional[int] = Field(default=None, ge=0)

class BusIn(BaseModel):
    busNumber: str
    routeId: str
    totalSeats: int = Field(default=40, ge=1)
    busType: str = "STANDARD"
    amenities: List[str] = []
    vendorId: Optional[str] = None

class TripIn(BaseModel):
    busId: str
    departureTime: datetime
    arrivalTime: datetime
    status: str = "SCHEDULED"

class VendorIn(BaseModel):
    name: str
    email: str
    phone: Optional[str] = None
    address: Optional[str] = None
    userId: Optional[str] = None
    password: Optional[str] = None

class VendorPatch(BaseModel):
    id: str
    name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None

class MachineIn(BaseModel):
    name: str
    location: str
    routeId: str
    isActive: bool = True

class MachinePatch(BaseModel):
    id: str
    name: Optional[str] = None
    location: Optional[str] = None
    routeId: Optional[str] = None
    isActive: Optional[bool] = None

class MachineSync(BaseModel):
    id: str
    lastSyncAt: Optional[datetime] = None
