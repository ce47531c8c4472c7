class ProcessingError(Exception):
    """Base de todos os erros do pipeline de lotes"""

    @property
    def kind(self) -> str:
        return type(self).__name__


class InvalidInput(ProcessingError):
    """Lote vazio, grande demais ou opções inválidas"""


class IOFailure(ProcessingError):
    """Falha ao criar diretórios ou materializar arquivos"""


class ProcessSpawnFailure(ProcessingError):
    """O processo externo não pôde ser iniciado"""


class ProcessTimeout(ProcessingError):
    """O processo excedeu o prazo e foi encerrado à força"""


class ProcessNonZeroExit(ProcessingError):
    def __init__(self, returncode: int, details: str = ""):
        self.returncode = returncode
        self.details = details
        message = f"Processo terminou com código {returncode}"
        if details:
            message = f"{message}: {details}"
        super().__init__(message)


class MissingOutputArtifact(ProcessingError):
    """Saída ausente ou vazia apesar do código de saída zero"""


class NotFound(ProcessingError):
    """Lote desconhecido"""
