class MandelnetError(Exception):
    pass

class ConfigurationError(MandelnetError, ValueError):
    pass

class PaletteNotFound(ConfigurationError):
    def __init__(self, name: str):
        super().__init__(f"Unknown palette: {name}")
        self.name = name

class TransportError(MandelnetError):
    pass

class EncodingError(MandelnetError):
    pass
