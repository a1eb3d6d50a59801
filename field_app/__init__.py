"""
Field App: visit submission flow for sales agents

- visits.py: form validation, location gating, record assembly, save
- admin.py: filtering and grouping of backend records for review
- service.py: small CLI to resolve a location or submit a visit
"""
