# realty_scores/services/sample_data.py
#
# Random but reproducible (seeded) sample records for development dashboards.
from typing import Any, Dict, List, NamedTuple, Optional, Sequence
from uuid import UUID, uuid4
from datetime import datetime, timedelta
import random

from realty_scores.schemas.score import utcnow


AREAS = ["Kokapet", "Narsingi", "Manchirevula", "Tellapur", "Kollur"]
CITY = "Hyderabad"
PROPERTY_TYPES = ["residential", "commercial", "land"]
PROPERTY_STATUSES = ["available", "pending", "sold"]
LEAD_STATUSES = ["new", "contacted", "qualified", "negotiation", "closed", "lost"]
LEAD_SOURCES = ["website", "referral", "social", "advertisement", "direct"]
AMENITIES = ["parking", "security", "power backup", "water supply"]

LEAD_FACTORS = [("Budget Match", 0.3), ("Communication Responsiveness", 0.2), ("Property Type Match", 0.3), ("Timeline", 0.2)]
PROPERTY_FACTORS = [("Location", 0.3), ("Price", 0.25), ("Growth Potential", 0.25), ("Amenities", 0.2)]
AGENT_FACTORS = [("Lead Conversion", 0.3), ("Revenue Generation", 0.3), ("Customer Satisfaction", 0.2), ("Response Time", 0.2)]

HISTORY_DAYS = 180


class SampleScore(NamedTuple):
    payload: Dict[str, Any]
    created_by: UUID
    created_at: datetime


def generate_sample_scores(
    users: Optional[Sequence[UUID]] = None,
    seed: Optional[int] = None,
    now: Optional[datetime] = None,
    lead_count: int = 20,
    property_count: int = 15,
) -> List[SampleScore]:
    """
    Build create payloads for leads, properties and one agent score per user,
    spread over the last HISTORY_DAYS days.
    """
    rng = random.Random(seed)
    now = now or utcnow()
    users = list(users) if users else [uuid4() for _ in range(5)]

    def factors(weights):
        return [{"name": name, "weight": weight, "value": rng.randint(1, 100)} for name, weight in weights]

    def sample(payload):
        return SampleScore(
            payload=payload,
            created_by=rng.choice(users),
            created_at=now - timedelta(days=rng.randrange(HISTORY_DAYS)),
        )

    samples = []

    # --- Leads ---
    for i in range(lead_count):
        samples.append(sample({
            "type": "lead",
            "score": rng.randint(1, 100),
            "notes": f"Sample lead score {i + 1}",
            "factors": factors(LEAD_FACTORS),
            "detail": {
                "name": f"Sample Lead {i + 1}",
                "email": f"lead{i + 1}@leads.neopolis.in",
                "phone": f"+91 98765{i:05d}",
                "budget": {"min": 2_000_000 + i * 500_000, "max": 5_000_000 + i * 500_000},
                "interested_in": [f"{rng.choice(AREAS)} {PROPERTY_TYPES[i % 3]}"],
                "source": rng.choice(LEAD_SOURCES),
                "status": rng.choice(LEAD_STATUSES),
                "assigned_to": rng.choice(users),
            },
        }))

    # --- Properties ---
    for i in range(property_count):
        area = rng.choice(AREAS)
        property_type = rng.choice(PROPERTY_TYPES)
        samples.append(sample({
            "type": "property",
            "score": rng.randint(1, 100),
            "notes": f"Sample property score {i + 1}",
            "factors": factors(PROPERTY_FACTORS),
            "detail": {
                "name": f"{area} {property_type.capitalize()} Property {i + 1}",
                "location": {"area": area, "city": CITY},
                "property_type": property_type,
                "price": rng.randint(5, 24) * 1_000_000,
                "size": rng.randint(1000, 5999),
                "amenities": list(AMENITIES),
                "status": rng.choice(PROPERTY_STATUSES),
            },
        }))

    # --- Agents ---
    for i, user in enumerate(users):
        samples.append(sample({
            "type": "agent",
            "score": rng.randint(1, 100),
            "notes": f"Sample agent score {i + 1}",
            "factors": factors(AGENT_FACTORS),
            "detail": {
                "user": user,
                "performance": {
                    "leads_handled": rng.randint(10, 59),
                    "conversion_rate": rng.randint(10, 59),
                    "revenue_generated": rng.randint(1_000_000, 10_999_999),
                    "customer_satisfaction": rng.randint(50, 99),
                    "response_time": rng.randint(1, 20),
                },
                "period": "monthly",
            },
        }))

    return samples
