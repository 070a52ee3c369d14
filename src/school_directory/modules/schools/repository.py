"""
School Repository

Database operations for schools. Every statement goes through the
DatabaseGateway, so values are always bound parameters.
"""

import logging

from sqlalchemy import insert, select

from school_directory.core.database import DatabaseGateway
from school_directory.modules.schools.models import School

logger = logging.getLogger(__name__)

schools_table = School.__table__

PUBLIC_COLUMNS = (
    schools_table.c.id,
    schools_table.c.name,
    schools_table.c.address,
    schools_table.c.city,
    schools_table.c.state,
    schools_table.c.contact,
    schools_table.c.image,
    schools_table.c.email,
    schools_table.c.created_at,
)


class SchoolRepository:
    """Repository for school database operations."""

    @staticmethod
    async def list_all(db: DatabaseGateway) -> list[dict]:
        """
        Get every school, newest first.

        Args:
            db: Database gateway

        Returns:
            One dict per row, keyed by column name
        """
        result = await db.execute(
            select(*PUBLIC_COLUMNS).order_by(
                schools_table.c.created_at.desc(),
                schools_table.c.id.desc(),
            )
        )
        return [dict(row) for row in result.mappings().all()]

    @staticmethod
    async def create(
        db: DatabaseGateway,
        *,
        name: str,
        address: str,
        city: str,
        state: str,
        contact: str,
        email: str,
        image: str | None = None,
    ) -> int:
        """
        Insert a school row.

        Args:
            db: Database gateway
            name: School name
            address: Street address
            city: City name
            state: State name
            contact: Contact number (digits only)
            email: Contact email address (unique)
            image: Stored image filename or URL (optional)

        Returns:
            The id assigned by the store

        Raises:
            StoreError: DUPLICATE kind if the email is already registered
        """
        result = await db.execute(
            insert(schools_table),
            {
                "name": name,
                "address": address,
                "city": city,
                "state": state,
                "contact": contact,
                "image": image,
                "email": email,
            },
        )
        school_id = result.inserted_primary_key[0]

        logger.info(f"Created school: {school_id} - {name}")
        return school_id
