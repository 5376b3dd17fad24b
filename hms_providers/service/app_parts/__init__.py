"""Request bodies and handlers shared by the service routes."""
