"""Shared configuration, logging, errors, job schema and queue transport."""
