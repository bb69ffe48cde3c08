"""AI Forge Studio API: multi-tenant requirement-to-code platform backend."""
