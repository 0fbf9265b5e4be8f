"""Paragraph specs, validation and the section draft synthesizer."""
