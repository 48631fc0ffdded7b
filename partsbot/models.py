"""
Pydantic models for data validation and serialization.
Defines conversation flow, chat session and storefront content models.
"""

import uuid
from datetime import datetime, timezone
from typing import Any, Dict, List, Literal, Optional, Tuple

from pydantic import BaseModel, Field, model_validator, validator


TITLE_MAX_LENGTH = 30
DEFAULT_SESSION_TITLE = "New Chat"


def utc_now() -> datetime:
    """Current time as an aware UTC datetime"""
    return datetime.now(timezone.utc)


def new_id() -> str:
    """Opaque identifier for sessions and messages"""
    return uuid.uuid4().hex


# ---------------------------------------------------------------------------
# Conversation flows
# ---------------------------------------------------------------------------

class FlowStep(BaseModel):
    """One prompt with its fixed set of selectable options"""
    key: str = Field(..., min_length=1, description="Step key, unique within its flow")
    label: str = Field(..., min_length=1, description="Label used when restating the answer")
    prompt: str = Field(..., min_length=1, description="Question shown to the user")
    options: Tuple[str, ...] = Field(..., min_length=1, description="Ordered selectable options")

    @validator('options')
    def validate_options(cls, v):
        """Options must be non-blank and unique"""
        if any(not option.strip() for option in v):
            raise ValueError('Step options cannot be blank')
        if len(set(v)) != len(v):
            raise ValueError('Step options must be unique')
        return v

    class Config:
        """Pydantic configuration"""
        frozen = True


class FlowDefinition(BaseModel):
    """A named, ordered sequence of steps for one customer-intake scenario"""
    id: str = Field(..., min_length=1, description="Unique flow identifier")
    title: str = Field(..., min_length=1, description="Display name, also the menu label")
    reference_prefix: str = Field(..., pattern=r'^[A-Z]{3}$', description="Reference code prefix")
    headline: str = Field(..., min_length=1, description="First line of the completion summary")
    next_steps: str = Field(..., min_length=1, description="Closing sentence of the completion summary")
    steps: Tuple[FlowStep, ...] = Field(..., min_length=1, description="Ordered steps")

    @model_validator(mode='after')
    def validate_step_keys(self) -> 'FlowDefinition':
        """Step keys must be unique within the flow"""
        keys = [step.key for step in self.steps]
        if len(keys) != len(set(keys)):
            raise ValueError(f'Flow {self.id} has duplicate step keys')
        return self

    @property
    def entry_step(self) -> FlowStep:
        """First step of the flow"""
        return self.steps[0]

    @property
    def step_keys(self) -> List[str]:
        return [step.key for step in self.steps]

    class Config:
        """Pydantic configuration"""
        frozen = True


# ---------------------------------------------------------------------------
# Chat sessions
# ---------------------------------------------------------------------------

class ChatMessage(BaseModel):
    """Chat message model for conversation history"""
    id: str = Field(default_factory=new_id, description="Message identifier")
    role: Literal["user", "assistant"] = Field(..., description="Message role")
    content: str = Field(..., min_length=1, description="Message content")
    timestamp: datetime = Field(default_factory=utc_now, description="Message timestamp")
    options: Optional[List[str]] = Field(None, description="Selectable options attached to the message")

    class Config:
        """Pydantic configuration"""
        json_encoders = {
            datetime: lambda v: v.isoformat()
        }


class ChatSession(BaseModel):
    """
    One user's conversation state.

    flow_answers holds exactly the answers for the steps before cursor.
    Once the last step is answered cursor equals the number of steps and
    the flow is complete until the user picks one of the summary options.
    """
    id: str = Field(default_factory=new_id, description="Session identifier")
    title: str = Field(default=DEFAULT_SESSION_TITLE, description="Session list title")
    messages: List[ChatMessage] = Field(default_factory=list, description="Append-only chat history")
    active_flow_id: Optional[str] = Field(None, description="Flow in progress, None at the main menu")
    flow_answers: Dict[str, str] = Field(default_factory=dict, description="Step key to selected option")
    cursor: Optional[int] = Field(None, description="Index of the current step in the active flow")
    created_at: datetime = Field(default_factory=utc_now, description="Creation timestamp")
    updated_at: datetime = Field(default_factory=utc_now, description="Last interaction timestamp")

    @property
    def last_message(self) -> Optional[ChatMessage]:
        return self.messages[-1] if self.messages else None

    def current_options(self) -> List[str]:
        """Options offered by the most recent assistant message"""
        for message in reversed(self.messages):
            if message.role == "assistant":
                return list(message.options or [])
        return []

    def is_flow_complete(self, step_count: int) -> bool:
        return self.active_flow_id is not None and self.cursor is not None and self.cursor >= step_count

    class Config:
        """Pydantic configuration"""
        json_encoders = {
            datetime: lambda v: v.isoformat()
        }


def make_title(text: str) -> str:
    """Session title derived from the latest user input"""
    text = text.strip()
    if len(text) > TITLE_MAX_LENGTH:
        return text[:TITLE_MAX_LENGTH] + "..."
    return text or DEFAULT_SESSION_TITLE


# ---------------------------------------------------------------------------
# Storefront records
# ---------------------------------------------------------------------------

class Product(BaseModel):
    """Catalog product as shown on the storefront"""
    id: str = Field(..., min_length=1, description="Product identifier")
    name: str = Field(..., min_length=1, description="Product name")
    description: str = Field(default="", description="Product description")
    price: str = Field(..., description="Display price, e.g. $120.00")
    original_price: Optional[float] = Field(None, ge=0, description="Price before discount")
    brand: str = Field(default="Unknown Brand", description="Brand name, e.g. Isuzu Parts")
    code: str = Field(default="", description="Product code")
    tag: str = Field(default="Uncategorized", description="Category tag")
    part_number: str = Field(default="", description="Manufacturer part number")
    condition: str = Field(default="New", description="Part condition")
    quantity: int = Field(default=0, ge=0, description="Units in stock")
    images: List[str] = Field(default_factory=list, description="Image URLs")
    videos: List[str] = Field(default_factory=list, description="Video URLs")

    @validator('id', pre=True)
    def validate_id(cls, v):
        """API ids are numeric, static ids are strings"""
        return str(v).strip()

    @classmethod
    def from_api(cls, payload: Dict[str, Any]) -> 'Product':
        """Convert an API product record to the storefront shape"""
        brand = payload.get('brand')
        if isinstance(brand, dict):
            brand_name = brand.get('brand_name') or 'Unknown Brand'
        else:
            brand_name = brand or 'Unknown Brand'
        original_price = payload.get('original_price')
        return cls(
            id=str(payload['id']),
            name=payload['name'],
            description=payload.get('description') or '',
            price=f"${float(payload.get('price') or 0):.2f}",
            original_price=float(original_price) if original_price else None,
            images=payload.get('images') or [],
            videos=payload.get('videos') or [],
            brand=brand_name,
            code=payload.get('part_number') or '',
            tag=payload.get('category') or 'Uncategorized',
            part_number=payload.get('part_number') or '',
            condition=payload.get('condition') or 'New',
            quantity=payload.get('quantity') or 0,
        )


class ContactInquiry(BaseModel):
    """Parts inquiry submitted through the contact form"""
    company_name: Optional[str] = Field(None, max_length=200, description="Company name")
    name: str = Field(..., min_length=2, max_length=100, description="Customer full name")
    email: str = Field(..., pattern=r'^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$', description="Customer email")
    phone: Optional[str] = Field(None, max_length=30, description="Customer phone number")
    vin: Optional[str] = Field(None, max_length=17, description="Vehicle identification number")
    vehicle_make_model: Optional[str] = Field(None, max_length=200, description="Vehicle make and model")
    vehicle_year: Optional[str] = Field(None, max_length=4, description="Vehicle year")
    engine_capacity: Optional[str] = Field(None, max_length=50, description="Engine capacity")
    parts_required: str = Field(..., min_length=1, max_length=5000, description="Parts the customer needs")

    @validator('name', 'parts_required')
    def validate_not_blank(cls, v):
        if not v.strip():
            raise ValueError('Field cannot be blank')
        return v.strip()

    @validator('vin')
    def validate_vin(cls, v):
        """Normalise VIN to upper case"""
        if v:
            return v.strip().upper()
        return v


class ContentRecord(BaseModel):
    """Common shape of records served by the content API"""
    id: Optional[int] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None

    class Config:
        """Pydantic configuration"""
        extra = "allow"


class HomeSettings(ContentRecord):
    address: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    logo: Optional[str] = None
    title: Optional[str] = None
    description: Optional[str] = None
    title_welcome: Optional[str] = None
    description_welcome: Optional[str] = None


class Slider(ContentRecord):
    image: str
    ordering: int = 0


class ShippingInfo(ContentRecord):
    title: str
    description: Optional[str] = None
    label_partner: Optional[str] = None
    text: Optional[str] = None
    map_image: Optional[str] = None


class Policy(ContentRecord):
    title: str
    privacy: Optional[str] = None
    warranty: Optional[str] = None
    shipping: Optional[str] = None
    order_cancellation: Optional[str] = None


class Faq(ContentRecord):
    question: str = Field(..., min_length=1)
    answer: str = Field(..., min_length=1)


class Contact(ContentRecord):
    address: Optional[str] = None
    phone: Optional[str] = None
    whatsApp: Optional[str] = None
    email: Optional[str] = None
    business_hour: Optional[str] = None
