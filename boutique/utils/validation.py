"""Normalization helpers and per-field validation rules for catalog items.

Each field owns an ordered tuple of named predicates. A predicate takes the
(already normalized) value and returns an error message or ``None``. Every
predicate of every field is evaluated, so a caller receives all violations
in a single pass.
"""
import re
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any, Callable, Dict, List, Optional, Tuple

from pydantic import HttpUrl, TypeAdapter, ValidationError

CATEGORIES = ("vetements", "chaussures", "accessoires", "sacs", "bijoux", "sport")
TAILLES = ("XS", "S", "M", "L", "XL", "XXL")
SEXES = ("homme", "femme", "enfant", "unisexe")

PRIX_MAX = Decimal("999999.99")

COULEUR_PATTERN = re.compile(r"^[A-Za-zÀ-ÖØ-öø-ÿ\s-]+$")

_http_url = TypeAdapter(HttpUrl)

Predicate = Callable[[Any], Optional[str]]


class ValidationFailed(Exception):
    """Raised when an entity carries one or more field violations."""

    def __init__(self, errors: Dict[str, List[str]], message: str = "Erreurs de validation"):
        super().__init__(message)
        self.message = message
        self.errors = errors


def strip_or_none(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    value = str(value).strip()
    return value or None


def normalize_lower(value: Optional[str]) -> Optional[str]:
    value = strip_or_none(value)
    return value.lower() if value is not None else None


def normalize_upper(value: Optional[str]) -> Optional[str]:
    value = strip_or_none(value)
    return value.upper() if value is not None else None


def round_price(value: Any) -> Optional[float]:
    if value is None:
        return None
    try:
        amount = Decimal(str(value))
    except InvalidOperation:
        return None
    if not amount.is_finite():
        return None
    try:
        return float(amount.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP))
    except InvalidOperation:
        # beyond decimal context precision, left for the range check to reject
        return float(amount)


def _is_empty(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def required(message: str) -> Predicate:
    def check(value):
        return message if _is_empty(value) else None
    check.__name__ = "required"
    return check


def min_length(limit: int, message: str) -> Predicate:
    def check(value):
        if _is_empty(value):
            return None
        return message if len(value) < limit else None
    check.__name__ = f"min_length_{limit}"
    return check


def max_length(limit: int, message: str) -> Predicate:
    def check(value):
        if _is_empty(value):
            return None
        return message if len(value) > limit else None
    check.__name__ = f"max_length_{limit}"
    return check


def one_of(choices: Tuple[str, ...], message: str) -> Predicate:
    def check(value):
        if _is_empty(value):
            return None
        return message if value not in choices else None
    check.__name__ = "one_of"
    return check


def matches(pattern: "re.Pattern[str]", message: str) -> Predicate:
    def check(value):
        if _is_empty(value):
            return None
        return message if not pattern.match(value) else None
    check.__name__ = "matches"
    return check


def positive(message: str) -> Predicate:
    def check(value):
        if value is None:
            return None
        return message if Decimal(str(value)) <= 0 else None
    check.__name__ = "positive"
    return check


def less_than(limit: Decimal, message: str) -> Predicate:
    def check(value):
        if value is None:
            return None
        return message if Decimal(str(value)) >= limit else None
    check.__name__ = "less_than"
    return check


def url(message: str) -> Predicate:
    def check(value):
        if _is_empty(value):
            return None
        try:
            _http_url.validate_python(value)
        except ValidationError:
            return message
        return None
    check.__name__ = "url"
    return check


PRODUIT_RULES: Dict[str, Tuple[Predicate, ...]] = {
    "nom": (
        required("Le nom du produit est obligatoire"),
        min_length(2, "Le nom doit contenir au moins 2 caractères"),
        max_length(255, "Le nom ne peut pas dépasser 255 caractères"),
    ),
    "description": (
        max_length(2000, "La description ne peut pas dépasser 2000 caractères"),
    ),
    "prix": (
        required("Le prix est obligatoire"),
        positive("Le prix doit être positif"),
        less_than(PRIX_MAX, "Le prix doit être inférieur à 999999.99"),
    ),
    "image": (
        url("L'image doit être une URL valide"),
        max_length(255, "L'URL de l'image ne peut pas dépasser 255 caractères"),
    ),
    "categorie": (
        required("La catégorie est obligatoire"),
        one_of(
            CATEGORIES,
            "La catégorie doit être l'une des suivantes : " + ", ".join(CATEGORIES),
        ),
    ),
    "taille": (
        one_of(TAILLES, "Veuillez choisir une taille valide (" + ", ".join(TAILLES) + ")"),
    ),
    "couleur": (
        max_length(50, "La couleur ne peut pas dépasser 50 caractères"),
        matches(COULEUR_PATTERN, "La couleur ne peut contenir que des lettres, espaces et tirets"),
    ),
    "sexe": (
        one_of(SEXES, "Le sexe doit être homme, femme, enfant ou unisexe"),
    ),
}


def validate_fields(entity, rules: Dict[str, Tuple[Predicate, ...]]) -> Dict[str, List[str]]:
    errors: Dict[str, List[str]] = {}
    for field, predicates in rules.items():
        value = getattr(entity, field, None)
        messages = [m for m in (p(value) for p in predicates) if m]
        if messages:
            errors[field] = messages
    return errors


def validate_produit(produit) -> Dict[str, List[str]]:
    return validate_fields(produit, PRODUIT_RULES)


__all__ = [
    "CATEGORIES",
    "TAILLES",
    "SEXES",
    "ValidationFailed",
    "validate_produit",
    "validate_fields",
    "round_price",
    "strip_or_none",
    "normalize_lower",
    "normalize_upper",
]
