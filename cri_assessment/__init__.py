"""
CRI Assessment Platform package.

This package contains the core functionality for the CRI profile self-assessment:
- catalog: Diagnostic statements, answer labels and tags, with a placeholder fallback
- scoring: Pluggable response scoring (keyword/length heuristic by default)
- view: Tier/tag filtering and pagination of the catalog
- session_manager: Assessment session state and file-backed session storage
- response_sync: Debounced persistence of responses to the backend
- assessment: Response, evidence and report operations on a session
- report_builder: Report rows and summary
- export_reports: CSV, PDF and Excel report exports
- score_chart: Score-per-diagnostic bar chart
- notifications: Report-ready email notification

Supporting modules:
- config: Settings loaded from the environment
- logging: Structured logging
- supabase_client, backend: Supabase-backed remote collaborators
"""
