import random
from typing import Optional, Sequence
from models.order import Chef, Driver, GeoPoint, OrderLocation
from models.schemas import CartLine

CHEFS = [
    ("Maria Gonzalez", "Home-style Mexican"),
    ("Kenji Watanabe", "Japanese comfort food"),
    ("Amira Haddad", "Levantine mezze"),
    ("Luca Bianchi", "Fresh pasta"),
    ("Priya Nair", "South Indian curries"),
]

DRIVERS = [
    ("David Cohen", "Electric scooter"),
    ("Sarah Levi", "Bicycle"),
    ("Omar Khalil", "Motorbike"),
    ("Noa Friedman", "Car"),
]

# City centre all generated geography is scattered around
CITY_CENTER = GeoPoint(lat=32.0753, lng=34.7718)
RESTAURANT_SPREAD = 0.01
CUSTOMER_MIN_OFFSET = 0.005
CUSTOMER_MAX_OFFSET = 0.02


def _avatar(name: str) -> str:
    seed = name.lower().replace(" ", "-")
    return f"https://i.pravatar.cc/150?u={seed}"


def pick_chef(lines: Sequence[CartLine], rng: random.Random) -> Chef:
    cook_name: Optional[str] = next((line.item.cook_name for line in lines if line.item.cook_name), None)
    if cook_name:
        specialty = "Home cook"
    else:
        cook_name, specialty = rng.choice(CHEFS)
    return Chef(
        name=cook_name,
        avatar=_avatar(cook_name),
        rating=round(rng.uniform(4.5, 5.0), 1),
        specialty=specialty,
    )


def pick_driver(rng: random.Random) -> Driver:
    name, vehicle = rng.choice(DRIVERS)
    return Driver(
        name=name,
        avatar=_avatar(name),
        rating=round(rng.uniform(4.6, 5.0), 1),
        vehicle=vehicle,
    )


def pick_location(rng: random.Random) -> OrderLocation:
    restaurant = GeoPoint(
        lat=CITY_CENTER.lat + rng.uniform(-RESTAURANT_SPREAD, RESTAURANT_SPREAD),
        lng=CITY_CENTER.lng + rng.uniform(-RESTAURANT_SPREAD, RESTAURANT_SPREAD),
    )

    def offset() -> float:
        return rng.choice((-1, 1)) * rng.uniform(CUSTOMER_MIN_OFFSET, CUSTOMER_MAX_OFFSET)

    customer = GeoPoint(lat=restaurant.lat + offset(), lng=restaurant.lng + offset())
    return OrderLocation(restaurant=restaurant, customer=customer)
