"""
Reference data: subscription tiers, book conditions, categories and a few cities.
Idempotent: rows are matched by name and only missing ones are inserted.
"""
from schoolbooks.db import db
from schoolbooks.models import Category, City, State, Tier

TIERS = [
    {
        "name": "Free",
        "description": "Basic subscription with limited features",
        "price": 0,
        "max_listings": 0,
        "featured_listings": False,
        "priority_support": False,
    },
    {
        "name": "Premium",
        "description": "Standard subscription with more features",
        "price": 10,
        "max_listings": 20,
        "featured_listings": False,
        "priority_support": False,
    },
    {
        "name": "Premium +",
        "description": "Premium subscription with all features",
        "price": 20,
        "max_listings": 50,
        "featured_listings": True,
        "priority_support": True,
    },
]

STATES = [
    {"name": "Good", "description": "Book shows signs of wear but is fully intact."},
    {"name": "Very Good", "description": "Minimal wear with minor imperfections."},
    {"name": "Excellent", "description": "Like new with no noticeable flaws."},
]

CATEGORIES = [
    {"name": "Primary School", "description": "Books for primary school education (ages 5-11)."},
    {"name": "Secondary School", "description": "Books for secondary school education (ages 11-18)."},
    {"name": "University", "description": "Academic books for university and higher education."},
]

CITIES = ["Sarajevo", "Mostar", "Banja Luka", "Tuzla", "Zenica"]


def _ensure(model, rows):
    added = 0
    for row in rows:
        if not model.query.filter_by(name=row["name"]).first():
            db.session.add(model(**row))
            added += 1
    return added


def seed_all() -> dict:
    counts = {
        "tiers": _ensure(Tier, TIERS),
        "states": _ensure(State, STATES),
        "categories": _ensure(Category, CATEGORIES),
        "cities": _ensure(City, [{"name": n} for n in CITIES]),
    }
    db.session.commit()
    return counts
