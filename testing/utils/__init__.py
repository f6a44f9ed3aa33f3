"""Shared testing utilities: scripted fakes for the edit loop collaborators."""
