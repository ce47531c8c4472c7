import logging
import os
import re
import shutil
import uuid
from pathlib import Path

logger = logging.getLogger(__name__)

_UNSAFE_CHARS = re.compile(r'[^\w\.-]')

def generate_unique_id() -> str:
    """Gera um ID único para processamento"""
    return str(uuid.uuid4())

def safe_stem(filename: str, default: str = "video") -> str:
    """Nome base do arquivo sem caracteres problemáticos"""
    stem = _UNSAFE_CHARS.sub('_', Path(filename).stem).strip('._')
    return stem or default

def safe_suffix(filename: str, default: str = ".mp4") -> str:
    """Extensão do arquivo original, usada no artefato de entrada"""
    suffix = Path(filename).suffix.lower()
    if not suffix or _UNSAFE_CHARS.search(suffix[1:]):
        return default
    return suffix

def cleanup_temp_files(*paths) -> bool:
    """
    Remove arquivos temporários.
    Falhas são apenas logadas; retorna False se algum caminho não pôde ser removido.
    """
    all_removed = True
    for path in paths:
        if not path or not os.path.lexists(path):
            continue
        try:
            if os.path.isdir(path) and not os.path.islink(path):
                shutil.rmtree(path)
            else:
                os.remove(path)
        except OSError as e:
            all_removed = False
            logger.warning(f"⚠️ Não foi possível remover {path}: {e}")
    return all_removed
