# Core infrastructure - database, auth, access control
