"""Users app.

Custom e-mail login user with traveller and hotel owner roles, plus the
authentication collaborator used by booking handlers. Use
``apps.users.models.CustomUser`` as AUTH_USER_MODEL.
"""
