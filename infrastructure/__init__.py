"""Infrastructure provisioning scripts."""
