"""Pydantic models for kubemend."""
