"""Circularity classification — transcript shaping and oracle scoring."""

from loopguard.classifier.classifier import CircularityClassifier, OracleError, parse_verdict
from loopguard.classifier.schemas import ConversationMessage, HealthAssessment, Role
from loopguard.classifier.transcript import InvalidTranscript, ShapedMessage

__all__ = [
    "CircularityClassifier",
    "ConversationMessage",
    "HealthAssessment",
    "InvalidTranscript",
    "OracleError",
    "Role",
    "ShapedMessage",
    "parse_verdict",
]
