"""Shared name and date helpers for the import pipeline"""
