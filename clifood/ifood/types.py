# -*- coding: utf-8 -*-
"""
Records built from iFood payloads. They only live for one command.
to_dict() gives the camelCase shape printed by `--json`.
"""
from dataclasses import dataclass
from typing import Dict, List, Optional, Union

HOST = "https://www.ifood.com.br"


def restaurant_url(slug: Optional[str], merchant_id: Optional[str]) -> str:
    if slug and merchant_id:
        return f"{HOST}/delivery/{slug}/{merchant_id}"
    return ""


def _drop_none(data: dict) -> dict:
    return {k: v for k, v in data.items() if v is not None}


@dataclass
class Restaurant:
    name: str
    url: str = ""
    id: Optional[str] = None
    slug: Optional[str] = None
    info: Optional[str] = None

    def to_dict(self):
        return _drop_none({
            "id": self.id,
            "slug": self.slug,
            "name": self.name,
            "url": self.url,
            "info": self.info,
        })


@dataclass
class MenuItem:
    name: str
    id: Optional[str] = None
    price: Optional[float] = None
    price_text: Optional[str] = None
    description: Optional[str] = None
    section: Optional[str] = None

    def to_dict(self):
        return _drop_none({
            "id": self.id,
            "name": self.name,
            "price": self.price,
            "priceText": self.price_text,
            "description": self.description,
            "section": self.section,
        })


@dataclass(frozen=True)
class CategoryPage:
    id: str
    title: str


@dataclass
class SubItem:
    id: str
    quantity: int

    def to_dict(self):
        return {"id": self.id, "quantity": self.quantity}


@dataclass
class CartItem:
    id: str
    quantity: int
    observation: str = ""
    sub_items: Optional[List[SubItem]] = None

    def to_dict(self):
        return _drop_none({
            "id": self.id,
            "quantity": self.quantity,
            "observation": self.observation,
            "subItems": [s.to_dict() for s in self.sub_items] if self.sub_items else None,
        })


@dataclass
class Coordinates:
    latitude: float
    longitude: float

    def to_dict(self):
        return {"latitude": self.latitude, "longitude": self.longitude}


@dataclass
class AddressInfo:
    id: str
    street_name: str
    street_number: str
    neighborhood: str
    state: str
    city: str
    country: str
    zip_code: Union[int, str]
    coordinates: Coordinates
    complement: str = ""
    reference: str = ""


@dataclass
class Phone:
    country_code: int
    area_code: int
    number: str

    def to_dict(self):
        return {"countryCode": self.country_code, "areaCode": self.area_code, "number": self.number}


@dataclass
class AccountInfo:
    id: str
    name: str
    email: str
    phone: Phone


@dataclass
class ApiContext:
    """
    Credentials for one CLI invocation.
    `headers` is replaced (never edited in place) whenever a later request
    shows fresher values; see session.merge_headers.
    """
    headers: Dict[str, str]
    address: AddressInfo
    account: AccountInfo
    latitude: float
    longitude: float
