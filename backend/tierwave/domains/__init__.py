"""Business domains: billing, usage and notifications."""
