"""Default catalog used when no stored catalog is available."""

from typing import Any

_IMAGE = "https://images.pexels.com/photos/{id}/pexels-photo-{id}.jpeg?auto=compress&cs=tinysrgb&w=500&h=500&dpr=1"

DEFAULT_PRODUCTS: list[dict[str, Any]] = [
    {
        "id": "1",
        "title": "Premium Wireless Headphones",
        "description": "High-quality wireless headphones with noise cancellation and premium sound quality.",
        "price": 299.99,
        "image": _IMAGE.format(id=3394650),
        "category": "Electronics",
        "rating": 4.8,
        "stock": 50,
        "brand": "AudioTech",
        "tags": ["wireless", "noise-cancelling", "premium"],
        "featured": True,
    },
    {
        "id": "2",
        "title": "Smartphone Pro Max",
        "description": "Latest smartphone with advanced camera system and powerful processor.",
        "price": 999.99,
        "image": _IMAGE.format(id=1092644),
        "category": "Electronics",
        "rating": 4.9,
        "stock": 30,
        "brand": "TechCorp",
        "tags": ["smartphone", "camera", "flagship"],
        "featured": True,
    },
    {
        "id": "3",
        "title": "Designer Leather Jacket",
        "description": "Premium leather jacket with modern design and superior craftsmanship.",
        "price": 399.99,
        "image": _IMAGE.format(id=1040945),
        "category": "Fashion",
        "rating": 4.7,
        "stock": 20,
        "brand": "StyleCo",
        "tags": ["leather", "designer", "jacket"],
        "featured": False,
    },
    {
        "id": "4",
        "title": "Smart Fitness Watch",
        "description": "Advanced fitness tracker with heart rate monitoring and GPS capabilities.",
        "price": 199.99,
        "image": _IMAGE.format(id=1334598),
        "category": "Electronics",
        "rating": 4.6,
        "stock": 75,
        "brand": "FitTech",
        "tags": ["smartwatch", "fitness", "gps"],
        "featured": True,
    },
    {
        "id": "5",
        "title": "Organic Coffee Beans",
        "description": "Premium organic coffee beans sourced from sustainable farms.",
        "price": 24.99,
        "image": _IMAGE.format(id=1695052),
        "category": "Food",
        "rating": 4.5,
        "stock": 100,
        "brand": "BrewMaster",
        "tags": ["organic", "coffee", "sustainable"],
        "featured": False,
    },
    {
        "id": "6",
        "title": "Gaming Mechanical Keyboard",
        "description": "High-performance mechanical keyboard designed for gaming enthusiasts.",
        "price": 149.99,
        "image": _IMAGE.format(id=1194713),
        "category": "Electronics",
        "rating": 4.7,
        "stock": 40,
        "brand": "GameGear",
        "tags": ["gaming", "mechanical", "keyboard"],
        "featured": False,
    },
    {
        "id": "7",
        "title": "Minimalist Desk Lamp",
        "description": "Modern LED desk lamp with adjustable brightness and sleek design.",
        "price": 89.99,
        "image": _IMAGE.format(id=1112598),
        "category": "Home",
        "rating": 4.4,
        "stock": 60,
        "brand": "LightCo",
        "tags": ["led", "desk", "minimalist"],
        "featured": True,
    },
    {
        "id": "8",
        "title": "Yoga Mat Premium",
        "description": "High-quality yoga mat with superior grip and cushioning.",
        "price": 59.99,
        "image": _IMAGE.format(id=3822356),
        "category": "Sports",
        "rating": 4.6,
        "stock": 80,
        "brand": "ZenFit",
        "tags": ["yoga", "fitness", "mat"],
        "featured": False,
    },
]
