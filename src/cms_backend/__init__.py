"""CMS backend: access-control and visibility-policy engine."""
