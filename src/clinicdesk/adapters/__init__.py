"""Adapters binding the application ports to the ERP and local storage."""
