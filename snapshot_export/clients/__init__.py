"""Upstream clients.

- graph: httpx client for the federated GraphQL service
- relational: psycopg access to reference tables and the change event log
- queries: GraphQL documents
"""
