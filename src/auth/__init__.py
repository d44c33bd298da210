"""Authentication: session cookies, external identity providers, principal resolution and ownership checks."""
