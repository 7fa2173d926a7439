"""Core packaging pipeline: hashing, packing, planning, uploading."""
