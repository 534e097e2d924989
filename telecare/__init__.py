"""Telecare: symptom assessment backend for the telehealth demo platform."""

__version__ = "0.1.0"
