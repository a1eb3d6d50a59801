"""
Backend: thin client over the single JSON endpoint of the spreadsheet backend

- ApiService.request(): POST {"action": ..., ...} and decode the JSON answer
- Field agent actions: login, saveVisit, dashboard
- Admin actions: getAllVisits, adminSummary, getSKUAnalysis, uplift review, targets
"""
