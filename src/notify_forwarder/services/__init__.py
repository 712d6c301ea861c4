"""Pipeline stages: content extraction, rule matching, templating, forwarding."""
