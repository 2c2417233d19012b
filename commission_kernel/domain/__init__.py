"""Pure domain layer: split arithmetic, DTOs, policy, and gateway contracts."""
