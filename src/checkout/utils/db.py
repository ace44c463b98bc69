from protean.domain import Domain
from sqlalchemy import create_engine

from checkout.config import get_settings


def _sql_providers(domain: Domain):
    for _, provider in domain.providers.items():
        if provider.conn_info["provider"] in ("sqlite", "postgresql"):
            yield provider


def setup_db(domain: Domain):
    """Setup database schema: Protean aggregate tables, then the stock ledger and invoice counter."""
    with domain.domain_context():
        for provider in _sql_providers(domain):
            engine = create_engine(provider.conn_info["database_uri"])

            for _, aggregate_record in domain.registry.aggregates.items():
                if aggregate_record.cls.meta_.provider == provider.name:
                    domain.repository_for(aggregate_record.cls)._dao  # noqa: B018

            for _, entity_record in domain.registry.entities.items():
                if entity_record.cls.meta_.provider == provider.name:
                    domain.repository_for(entity_record.cls)._dao  # noqa: B018

            # Force DAO creation for outbox tables (registered as internal)
            if hasattr(domain, "_outbox_repos") and provider.name in domain._outbox_repos:
                domain._outbox_repos[provider.name]._dao  # noqa: B018

            provider._metadata.create_all(engine)

    database_url = get_settings().database_url
    if database_url:
        from checkout.inventory.sql_ledger import SqlStockLedger
        from checkout.invoice.sequence import SqlInvoiceNumberSequence

        SqlStockLedger(database_url).create_tables()
        SqlInvoiceNumberSequence(database_url).create_tables()


def drop_db(domain: Domain):
    """Drop database schema"""
    with domain.domain_context():
        for provider in _sql_providers(domain):
            engine = create_engine(provider.conn_info["database_uri"])
            provider._metadata.drop_all(engine)

    database_url = get_settings().database_url
    if database_url:
        from checkout.inventory.sql_ledger import SqlStockLedger
        from checkout.invoice.sequence import SqlInvoiceNumberSequence

        SqlStockLedger(database_url).drop_tables()
        SqlInvoiceNumberSequence(database_url).drop_tables()
