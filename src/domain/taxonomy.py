"""Threat taxonomy and label matching.

Pure domain logic mapping free-form model labels (object classes, scene
names, cloud annotation entities) onto the moderation taxonomy.
"""

from dataclasses import dataclass
from typing import FrozenSet, List, Optional, Tuple

from rapidfuzz.distance import Levenshtein

from src.domain.enums import EvidenceCategory, Severity
from src.domain.value_objects.detection_evidence import DetectionEvidence


DEFAULT_SIMILARITY_THRESHOLD = 0.75


@dataclass(frozen=True)
class ThreatClass:
    """One taxonomy subcategory with its tokens and confidence floor."""

    category: EvidenceCategory
    subcategory: str
    tokens: Tuple[str, ...]
    severity: Severity
    min_confidence: float

    @property
    def evidence_type(self) -> str:
        return f"{self.category.value}_{self.subcategory}"


WEAPON_CLASSES: Tuple[ThreatClass, ...] = (
    ThreatClass(
        EvidenceCategory.WEAPONS,
        "firearms",
        ("rifle", "gun", "pistol", "shotgun", "revolver", "firearm"),
        Severity.CRITICAL,
        0.4,
    ),
    ThreatClass(
        EvidenceCategory.WEAPONS,
        "melee",
        ("knife", "sword", "axe", "machete", "dagger", "blade"),
        Severity.HIGH,
        0.5,
    ),
    ThreatClass(
        EvidenceCategory.WEAPONS,
        "explosives",
        ("bomb", "grenade", "explosive", "missile"),
        Severity.CRITICAL,
        0.3,
    ),
)

VIOLENCE_CLASSES: Tuple[ThreatClass, ...] = (
    ThreatClass(
        EvidenceCategory.VIOLENCE,
        "direct",
        ("fight", "assault", "attack", "combat", "fighting"),
        Severity.HIGH,
        0.4,
    ),
    ThreatClass(
        EvidenceCategory.VIOLENCE,
        "graphic",
        ("blood", "injury", "wound", "gore"),
        Severity.HIGH,
        0.5,
    ),
)

CONTEXT_CLASSES: Tuple[ThreatClass, ...] = (
    ThreatClass(
        EvidenceCategory.CONTEXT,
        "military",
        ("military", "soldier", "army", "warfare", "battlefield", "tank"),
        Severity.MEDIUM,
        0.6,
    ),
    ThreatClass(
        EvidenceCategory.CONTEXT,
        "criminal",
        ("crime", "robbery", "shooting", "terrorism"),
        Severity.HIGH,
        0.5,
    ),
)

# Evidence produced by the pixel heuristics rather than the taxonomy.
BLOOD_DETECTED = "blood_detected"
VIOLENCE_COMPOSITION = "violence_composition"

WEAPONS_FIREARMS = "weapons_firearms"
WEAPONS_MELEE = "weapons_melee"
WEAPONS_EXPLOSIVES = "weapons_explosives"
VIOLENCE_DIRECT = "violence_direct"
VIOLENCE_GRAPHIC = "violence_graphic"

MANDATORY_FLAG_TYPES: FrozenSet[str] = frozenset(
    {
        WEAPONS_FIREARMS,
        WEAPONS_EXPLOSIVES,
        WEAPONS_MELEE,
        BLOOD_DETECTED,
        VIOLENCE_DIRECT,
        VIOLENCE_GRAPHIC,
    }
)

# Keywords used to screen labels returned by the cloud service: every local
# taxonomy token plus broader terms the cloud label vocabulary uses.
UNSAFE_KEYWORDS: Tuple[str, ...] = tuple(
    dict.fromkeys(
        [
            token
            for threat in WEAPON_CLASSES + VIOLENCE_CLASSES + CONTEXT_CLASSES
            for token in threat.tokens
        ]
        + [
            "weapon",
            "violence",
            "violent",
            "explosion",
            "war",
            "shot",
            "kill",
            "death",
            "dead",
            "murder",
            "terrorist",
        ]
    )
)


def label_similarity(label: str, token: str) -> float:
    """Normalized edit-distance similarity in [0, 1]."""
    return Levenshtein.normalized_similarity(label, token)


def _matches(
    label: str, threat: ThreatClass, fuzzy: bool, similarity_threshold: float
) -> bool:
    for token in threat.tokens:
        if token in label:
            return True
        if fuzzy and label_similarity(label, token) > similarity_threshold:
            return True
    return False


def _match_classes(
    label: str,
    score: float,
    classes: Tuple[ThreatClass, ...],
    fuzzy: bool,
    similarity_threshold: float,
) -> List[DetectionEvidence]:
    normalized = label.strip().lower()
    if not normalized:
        return []

    evidence = []
    for threat in classes:
        if score < threat.min_confidence:
            continue
        if _matches(normalized, threat, fuzzy, similarity_threshold):
            evidence.append(
                DetectionEvidence(
                    type=threat.evidence_type,
                    confidence=int(round(score * 100)),
                    severity=threat.severity,
                    category=threat.category,
                    source=label,
                )
            )
    return evidence


def match_object_label(
    label: str,
    score: float,
    similarity_threshold: float = DEFAULT_SIMILARITY_THRESHOLD,
) -> List[DetectionEvidence]:
    """Match an object-detector label against weapon and violence classes.

    Args:
        label: Class name reported by the detector
        score: Detector confidence in [0, 1]
        similarity_threshold: Minimum fuzzy similarity for a non-substring match

    Returns:
        One evidence item per matched subcategory
    """
    return _match_classes(
        label,
        score,
        WEAPON_CLASSES + VIOLENCE_CLASSES,
        fuzzy=True,
        similarity_threshold=similarity_threshold,
    )


def match_scene_label(label: str, score: float) -> List[DetectionEvidence]:
    """Match a scene-classifier label against the context classes.

    Scene labels are descriptive phrases, so only substring matches count.
    """
    return _match_classes(
        label,
        score,
        CONTEXT_CLASSES,
        fuzzy=False,
        similarity_threshold=DEFAULT_SIMILARITY_THRESHOLD,
    )


def find_unsafe_keyword(label: str) -> Optional[str]:
    """Return the first unsafe keyword contained in ``label``, if any."""
    normalized = label.lower()
    for keyword in UNSAFE_KEYWORDS:
        if keyword in normalized:
            return keyword
    return None
