"""Workflow graph schema, scheduler and node executors."""
