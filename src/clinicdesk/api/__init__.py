"""HTTP surface of ClinicDesk."""
