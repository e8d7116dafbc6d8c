"""
Manage Clients Use Case

Administrative operations on registered OAuth clients.
"""

from typing import List

from libs.result import Error, Result, Return
from src.app.services.oauth_client_registry import OAuthClientRegistry, RegisteredClient
from src.app.services.settings import SecuritySettings
from src.app.services.unit_of_work import UnitOfWork
from src.domain.entities import AuditEvent, ClientStatus, OAuthClient, TokenEndpointAuthMethod
from .dtos import ClientInfo, ClientWithSecret, RegisterClientCommand, UpdateClientCommand


def client_info(client: OAuthClient) -> ClientInfo:
    return ClientInfo(
        client_id=client.client_id,
        name=client.name,
        description=client.description,
        redirect_uris=list(client.redirect_uris),
        allowed_scopes=list(client.allowed_scopes),
        grant_types=list(client.grant_types),
        token_endpoint_auth_method=TokenEndpointAuthMethod(client.token_endpoint_auth_method).value,
        require_pkce=client.require_pkce,
        status=ClientStatus(client.status).value,
        homepage_uri=client.homepage_uri,
        logo_uri=client.logo_uri,
        created_at=client.created_at,
        updated_at=client.updated_at,
    )


def _with_secret(registered: RegisteredClient) -> ClientWithSecret:
    return ClientWithSecret(
        client=client_info(registered.client), client_secret=registered.client_secret
    )


class ManageClientsUseCase:
    """
    Business Rules:
    - The plaintext secret is returned only by register and regenerate_secret
    - Regenerating a secret invalidates the old one immediately
    - Suspended clients can neither authorize nor exchange codes
    """

    def __init__(self, uow: UnitOfWork, settings: SecuritySettings):
        self.uow = uow
        self.registry = OAuthClientRegistry(uow, settings)

    async def register(self, command: RegisterClientCommand) -> Result[ClientWithSecret]:
        try:
            auth_method = TokenEndpointAuthMethod(command.token_endpoint_auth_method)
        except ValueError:
            return Return.err(Error("INVALID_CLIENT_METADATA", "Unsupported token_endpoint_auth_method"))

        async with self.uow:
            result = await self.registry.register(
                name=command.name,
                redirect_uris=command.redirect_uris,
                allowed_scopes=command.allowed_scopes,
                grant_types=command.grant_types,
                description=command.description,
                token_endpoint_auth_method=auth_method,
                require_pkce=command.require_pkce,
                homepage_uri=command.homepage_uri,
                logo_uri=command.logo_uri,
            )
            if result.is_err():
                return result

            await self.uow.audit_events.create(
                AuditEvent(
                    client_id=result.value.client.client_id,
                    action="oauth_client_registered",
                    event_metadata={"name": command.name},
                )
            )
            await self.uow.commit()
            return Return.ok(_with_secret(result.value))

    async def get(self, client_id: str) -> Result[ClientInfo]:
        async with self.uow:
            client = await self.registry.get(client_id)
            if not client:
                return Return.err(Error("CLIENT_NOT_FOUND", "Client not found"))
            return Return.ok(client_info(client))

    async def list(self) -> Result[List[ClientInfo]]:
        async with self.uow:
            clients = await self.registry.list()
            return Return.ok([client_info(c) for c in clients])

    async def regenerate_secret(self, client_id: str) -> Result[ClientWithSecret]:
        async with self.uow:
            result = await self.registry.regenerate_secret(client_id)
            if result.is_err():
                return result

            await self.uow.audit_events.create(
                AuditEvent(client_id=client_id, action="oauth_client_secret_regenerated")
            )
            await self.uow.commit()
            return Return.ok(_with_secret(result.value))

    async def update(self, client_id: str, command: UpdateClientCommand) -> Result[ClientInfo]:
        changes = command.model_dump(exclude_none=True)
        async with self.uow:
            result = await self.registry.update(client_id, **changes)
            if result.is_err():
                return result
            await self.uow.commit()
            return Return.ok(client_info(result.value))

    async def set_status(self, client_id: str, status: str) -> Result[ClientInfo]:
        try:
            new_status = ClientStatus(status)
        except ValueError:
            return Return.err(Error("INVALID_CLIENT_METADATA", "Unsupported status"))

        async with self.uow:
            result = await self.registry.set_status(client_id, new_status)
            if result.is_err():
                return result

            await self.uow.audit_events.create(
                AuditEvent(
                    client_id=client_id,
                    action="oauth_client_status_changed",
                    event_metadata={"status": new_status.value},
                )
            )
            await self.uow.commit()
            return Return.ok(client_info(result.value))

    async def delete(self, client_id: str) -> Result[dict]:
        async with self.uow:
            deleted = await self.registry.delete(client_id)
            if not deleted:
                return Return.err(Error("CLIENT_NOT_FOUND", "Client not found"))

            await self.uow.audit_events.create(
                AuditEvent(client_id=client_id, action="oauth_client_deleted")
            )
            await self.uow.commit()
            return Return.ok({"client_id": client_id, "deleted": True})
