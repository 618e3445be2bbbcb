"""
Remote backends implementing core.ports.RemoteService.

- supabase_remote.py: hosted Supabase project (auth + tasks table)
- offline.py: in-process demo backend, optional JSON persistence
"""
