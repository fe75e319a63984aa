from burnnote.models.secret import Secret

__all__ = ["Secret"]
