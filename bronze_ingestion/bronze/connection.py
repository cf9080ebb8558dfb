"""
Warehouse database connection.
"""

import psycopg2

from bronze_ingestion.config import Config


def get_db_connection():
    """
    Open a connection to the warehouse with the configured timeouts.

    Returns:
        psycopg2 connection with autocommit off and statement_timeout applied
    """
    conn = psycopg2.connect(**Config.get_db_connection_details())
    with conn.cursor() as cursor:
        cursor.execute("SET statement_timeout = %s", (Config.DB_STATEMENT_TIMEOUT,))
    conn.commit()
    return conn
