"""Clients and static data behind the agent tools."""
