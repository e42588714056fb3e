from authcore.models.principal import PrincipalRecord

__all__ = ["PrincipalRecord"]
