# app/db/session.py
from sqlalchemy.orm import declarative_base

# Metadata of the hosted schema. The application itself talks to the database
# through the REST gateway; these models drive Alembic migrations.
Base = declarative_base()
