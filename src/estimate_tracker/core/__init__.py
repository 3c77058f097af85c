"""Core data types and exceptions shared by the delete subsystem."""
