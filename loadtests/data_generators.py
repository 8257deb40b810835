"""Faker-based data generators for Locust load test scenarios.

Each generator produces payloads that pass the ordering API's Pydantic
request schemas and the domain's validation rules.
"""

import random
import uuid

from faker import Faker

fake = Faker("en_IN")


def customer_id() -> str:
    return f"cust-lt-{uuid.uuid4().hex[:10]}"


def product_data(stock: int | None = None) -> dict:
    return {
        "name": f"{fake.word().title()} {random.choice(['Tea', 'Coffee', 'Spice Mix', 'Honey'])}",
        "price": round(random.uniform(40, 600), 2),
        "stock": stock if stock is not None else random.randint(50, 500),
        "image": fake.image_url(),
    }


def shipping_address() -> dict:
    return {
        "full_name": fake.name(),
        "address": fake.street_address(),
        "city": fake.city(),
        "state": fake.state(),
        "pincode": fake.postcode(),
        "phone": fake.msisdn()[:10],
    }


def order_data(customer: str) -> dict:
    return {
        "customer_id": customer,
        "shipping_address": shipping_address(),
        "payment_method": random.choice(["cod", "card", "upi", "razorpay"]),
        "notes": fake.sentence() if random.random() < 0.2 else None,
    }
