"""Operational services: external tool runner, compose database, build tasks."""
