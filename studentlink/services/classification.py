"""
Keyword-based priority and category detection for concern text.

Everything here is deterministic: the same subject/description always
yields the same classification, which lets intake, the classify endpoint
and the automation webhooks agree.
"""
from typing import Dict, List

URGENT_KEYWORDS = (
    "urgent", "emergency", "asap", "immediately", "critical", "serious",
    "dangerous", "threat", "violence", "harassment", "bullying", "assault",
    "medical emergency", "hospital", "ambulance", "police", "security",
)

HIGH_KEYWORDS = (
    "important", "priority", "deadline", "due", "expired", "overdue",
    "problem", "issue", "broken", "not working", "failed", "error",
)

# Insertion order matters: ties go to the first category listed
CATEGORY_KEYWORDS: Dict[str, tuple] = {
    "academic": ("grade", "exam", "assignment", "course", "professor", "homework", "gpa"),
    "financial": ("payment", "tuition", "fee", "money", "cost", "refund", "scholarship"),
    "administrative": ("enrollment", "registration", "transcript", "diploma", "records"),
    "technical": ("login", "password", "system", "website", "portal", "error", "bug"),
    "housing": ("dormitory", "dorm", "room", "housing", "roommate", "facility"),
    "health": ("health", "medical", "doctor", "clinic", "sick", "medicine"),
    "safety": ("safety", "security", "emergency", "danger", "harassment", "bullying"),
}

CATEGORY_DEPARTMENT = {
    "academic": 1,
    "financial": 2,
    "administrative": 3,
    "technical": 4,
    "housing": 5,
    "health": 6,
    "safety": 7,
    "general": 1,
}

KEYWORD_INDEX: Dict[str, tuple] = {
    "academic": (
        "grade", "exam", "assignment", "course", "professor", "instructor", "syllabus",
        "curriculum", "homework", "project", "thesis", "dissertation", "research",
        "academic", "scholarly", "study", "learning", "education", "student portal",
        "canvas", "blackboard", "moodle", "lms", "gpa", "transcript", "credits",
    ),
    "financial": (
        "payment", "tuition", "fee", "financial aid", "scholarship", "refund",
        "billing", "money", "cost", "expensive", "afford", "loan", "grant",
        "bursar", "cashier", "account", "balance", "outstanding", "due",
    ),
    "administrative": (
        "enrollment", "registration", "transcript", "diploma", "graduation",
        "records", "document", "form", "application", "admission", "withdrawal",
        "drop", "add", "schedule", "timetable", "catalog", "handbook",
    ),
    "technical": (
        "login", "password", "system", "website", "portal", "error", "bug",
        "technical", "computer", "internet", "wifi", "network", "server",
        "database", "software", "hardware", "device", "mobile", "app",
    ),
    "housing": (
        "dormitory", "dorm", "room", "housing", "residence", "accommodation",
        "roommate", "facility", "maintenance", "repair", "cleaning", "laundry",
    ),
    "health": (
        "health", "medical", "doctor", "nurse", "clinic", "hospital", "medicine",
        "sick", "illness", "injury", "emergency", "mental health", "counseling",
    ),
    "safety": (
        "safety", "security", "emergency", "danger", "threat", "harassment",
        "bullying", "violence", "theft", "robbery", "assault", "campus police",
    ),
}

POSITIVE_WORDS = (
    "good", "great", "excellent", "amazing", "wonderful", "fantastic",
    "happy", "pleased", "satisfied", "thankful", "grateful", "helpful",
)

NEGATIVE_WORDS = (
    "bad", "terrible", "awful", "horrible", "disappointed", "frustrated",
    "angry", "upset", "sad", "worried", "concerned", "problem", "issue",
)

MAX_KEYWORDS = 10


def detect_priority(text: str) -> str:
    if any(k in text for k in URGENT_KEYWORDS):
        return "urgent"
    if any(k in text for k in HIGH_KEYWORDS):
        return "high"
    return "medium"


def detect_category(text: str) -> str:
    best, best_score = "general", 0
    for category, keywords in CATEGORY_KEYWORDS.items():
        score = sum(1 for k in keywords if k in text)
        if score > best_score:
            best, best_score = category, score
    return best


def detect_department(category: str) -> int:
    return CATEGORY_DEPARTMENT.get(category, 1)


def analyze_sentiment(text: str) -> str:
    positive = sum(1 for w in POSITIVE_WORDS if w in text)
    negative = sum(1 for w in NEGATIVE_WORDS if w in text)
    if positive > negative:
        return "positive"
    if negative > positive:
        return "negative"
    return "neutral"


def _relevance(text: str, keyword: str) -> float:
    # occurrences per 1000 characters, boosted for longer (more specific) keywords
    frequency = text.count(keyword) / (len(text) / 1000)
    return frequency + len(keyword) / 10


def extract_keywords(text: str) -> List[dict]:
    found = [
        {"keyword": kw, "category": category, "relevance": round(_relevance(text, kw), 4)}
        for category, keywords in KEYWORD_INDEX.items()
        for kw in keywords
        if kw in text
    ]
    found.sort(key=lambda k: k["relevance"], reverse=True)
    return found[:MAX_KEYWORDS]


def classify(text: str) -> dict:
    text = (text or "").lower()
    priority = detect_priority(text)
    category = detect_category(text)
    sentiment = analyze_sentiment(text) if text else "neutral"
    return {
        "priority": priority,
        "category": category,
        "department_id": detect_department(category),
        "sentiment": sentiment,
        "keywords": extract_keywords(text) if text else [],
        "auto_escalation": priority == "urgent" and sentiment == "negative",
    }


def classify_concern(subject: str | None, description: str | None) -> dict:
    return classify(" ".join(part for part in (subject, description) if part))
