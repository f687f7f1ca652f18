"""Shared router that endpoint modules register their routes on."""

from __future__ import annotations

from fastapi import APIRouter

router = APIRouter()
