"""Route groups of the site.

- **default**: public pages mounted at ``/``
- **contact**: the contact form endpoint
- **auth**: login, registration and logout under ``/auth``
- **admin**: administrator pages under ``/admin``
- **health**: liveness and database probe
"""
