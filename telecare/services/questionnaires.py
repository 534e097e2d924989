"""
Static questionnaire catalog and the canonical emergency-symptom list.

Everything here is read-only: the catalog is rebuilt from plain data on each
call so callers can never mutate shared state.
"""
from __future__ import annotations

from typing import Any, Dict, FrozenSet, Iterable, List

from telecare.schemas.questionnaire import Questionnaire

# Display order for the UI. Matching goes through get_emergency_symptoms().
EMERGENCY_SYMPTOMS = (
    "chest pain",
    "difficulty breathing",
    "severe abdominal pain",
    "loss of consciousness",
    "severe headache",
    "confusion",
    "high fever with rash",
    "severe allergic reaction",
    "signs of stroke",
    "severe bleeding",
    "thoughts of self-harm",
)

EMERGENCY_WARNING = (
    "You have selected symptoms that may require immediate medical attention. "
    "Please consider seeking emergency care if symptoms are severe."
)

_CATALOG: List[Dict[str, Any]] = [
    {
        "id": "symptom_checker",
        "title": "Symptom Checker",
        "description": "Answer questions about your current symptoms for AI-powered health assessment",
        "questions": [
            {
                "id": "primary_symptoms",
                "type": "multiple_choice",
                "question": "What are your primary symptoms? (Select all that apply)",
                "options": [
                    "Headache", "Fever", "Cough", "Sore throat", "Fatigue",
                    "Nausea", "Vomiting", "Diarrhea", "Abdominal pain",
                    "Chest pain", "Difficulty breathing", "Dizziness",
                    "Muscle aches", "Joint pain", "Skin rash", "Other",
                ],
                "required": True,
            },
            {
                "id": "symptom_onset",
                "type": "multiple_choice",
                "question": "When did your symptoms start?",
                "options": [
                    "Less than 24 hours ago",
                    "1-3 days ago",
                    "4-7 days ago",
                    "1-2 weeks ago",
                    "More than 2 weeks ago",
                ],
                "required": True,
            },
            {
                "id": "symptom_severity",
                "type": "scale",
                "question": "Rate the overall severity of your symptoms (1 = mild, 10 = severe)",
                "required": True,
            },
            {
                "id": "temperature",
                "type": "multiple_choice",
                "question": "Have you measured your temperature?",
                "options": [
                    "No fever (under 100°F/37.8°C)",
                    "Low fever (100-101°F/37.8-38.3°C)",
                    "Moderate fever (101-103°F/38.3-39.4°C)",
                    "High fever (over 103°F/39.4°C)",
                    "Haven't measured",
                ],
                "required": False,
            },
            {
                "id": "additional_symptoms",
                "type": "text",
                "question": "Please describe any additional symptoms or details",
                "required": False,
            },
            {
                "id": "medical_history",
                "type": "boolean",
                "question": "Do you have any chronic medical conditions?",
                "required": False,
            },
            {
                "id": "current_medications",
                "type": "boolean",
                "question": "Are you currently taking any medications?",
                "required": False,
            },
        ],
    },
    {
        "id": "wellness_check",
        "title": "General Wellness Assessment",
        "description": "Comprehensive wellness evaluation for preventive health",
        "questions": [
            {
                "id": "energy_level",
                "type": "scale",
                "question": "Rate your overall energy level (1 = very low, 10 = very high)",
                "required": True,
            },
            {
                "id": "sleep_quality",
                "type": "scale",
                "question": "Rate your sleep quality (1 = very poor, 10 = excellent)",
                "required": True,
            },
            {
                "id": "stress_level",
                "type": "scale",
                "question": "Rate your stress level (1 = very low, 10 = very high)",
                "required": True,
            },
            {
                "id": "exercise_frequency",
                "type": "multiple_choice",
                "question": "How often do you exercise?",
                "options": ["Daily", "3-5 times per week", "1-2 times per week", "Rarely", "Never"],
                "required": True,
            },
            {
                "id": "diet_quality",
                "type": "multiple_choice",
                "question": "How would you describe your diet?",
                "options": ["Very healthy", "Mostly healthy", "Average", "Somewhat unhealthy", "Very unhealthy"],
                "required": True,
            },
        ],
    },
]


def get_questionnaires() -> List[Questionnaire]:
    return [Questionnaire.model_validate(q) for q in _CATALOG]


def get_emergency_symptoms() -> FrozenSet[str]:
    return frozenset(EMERGENCY_SYMPTOMS)


def find_emergency_symptoms(symptoms: Iterable[Any]) -> List[str]:
    """Return canonical emergency phrases found in any of the given symptom labels.

    Matching is a case-insensitive substring test, so "Severe chest pain since
    morning" matches "chest pain". Results keep EMERGENCY_SYMPTOMS order.
    """
    labels = [s.strip().lower() for s in symptoms if isinstance(s, str) and s.strip()]
    return [phrase for phrase in EMERGENCY_SYMPTOMS if any(phrase in label for label in labels)]
