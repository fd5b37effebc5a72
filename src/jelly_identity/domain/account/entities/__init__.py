from jelly_identity.domain.account.entities.identity import Identity, ProviderIdentity

__all__ = ["Identity", "ProviderIdentity"]
