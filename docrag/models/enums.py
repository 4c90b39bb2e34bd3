"""Enumeration types for docrag data models."""

from enum import Enum


class DropResult(str, Enum):
    DROPPED = "dropped"
    MISSING = "missing"
