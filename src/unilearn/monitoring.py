"""Monitoring configuration for the study backend."""
from prometheus_client import Counter, start_http_server

# Review metrics
reviews_total = Counter(
    "unilearn_reviews_total",
    "Total number of flashcard reviews",
    ["outcome"],
)

invalid_quality_total = Counter(
    "unilearn_invalid_quality_total",
    "Total number of reviews rejected for an out-of-range quality score",
)

cards_mastered = Counter(
    "unilearn_cards_mastered_total",
    "Total number of times a flashcard became mastered",
)

sets_completed = Counter(
    "unilearn_sets_completed_total",
    "Total number of flashcard sets completed by users",
)

# Content metrics
sets_created = Counter(
    "unilearn_sets_created_total",
    "Total number of flashcard sets created",
)

cards_created = Counter(
    "unilearn_cards_created_total",
    "Total number of flashcards created",
)

# Error metrics
error_count = Counter(
    "unilearn_errors_total",
    "Total number of errors encountered",
    ["error_type"],
)


def start_monitoring(port: int = 9090) -> None:
    """Start the Prometheus metrics server."""
    start_http_server(port)
