"""Guest session helpers: session tokens and generated display names."""

import random
import secrets

ADJECTIVES = [
    "adventurous", "brave", "curious", "daring", "eager",
    "fearless", "graceful", "happy", "intrepid", "jolly",
    "keen", "lively", "mighty", "nimble", "outdoor",
    "peaceful", "quick", "resilient", "spirited", "swift",
    "trail", "valiant", "wandering", "zealous", "active",
]

ANIMALS = [
    "alpaca", "badger", "bear", "beaver", "bison",
    "bobcat", "caribou", "cheetah", "deer", "eagle",
    "elk", "falcon", "fox", "hawk", "jaguar",
    "leopard", "llama", "lynx", "moose", "mountain-goat",
    "otter", "panther", "puma", "rabbit", "ram",
    "raven", "squirrel", "tiger", "wolf", "yak",
]

SESSION_COOKIE_NAME = "trek_session_id"


def generate_session_id() -> str:
    return secrets.token_urlsafe(16)


def generate_anonymous_username() -> str:
    """e.g. ``swift-llama-42``"""
    return f"{random.choice(ADJECTIVES)}-{random.choice(ANIMALS)}-{random.randint(0, 99)}"
