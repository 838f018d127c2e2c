from chatgate.config.config import Config

__all__ = ["Config"]
