"""Union leave management: calendar import and reconciliation pipeline."""
