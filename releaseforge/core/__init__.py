"""Promotion core: workflow components and the bundled collaborator backends."""
