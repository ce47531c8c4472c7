import sys
import os
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

import stat
import pytest
from pathlib import Path

from media_pipeline.models import MediaFile
from media_pipeline.worker_pool import WorkerPool
from media_pipeline.batch_processor import BatchProcessor

# O conteúdo do arquivo de entrada decide o comportamento do FFmpeg falso:
#   hang  -> nunca termina (até ser morto)
#   fail  -> código de saída 1
#   noout -> código 0 sem gerar saída
#   slow  -> demora um pouco e gera saída
#   resto -> gera saída imediatamente
FAKE_FFMPEG = '''#!{python}
import sys, time
args = sys.argv[1:]
src = args[args.index("-i") + 1]
dst = args[-1]
with open(src, "rb") as f:
    data = f.read()
sys.stderr.write("Input #0, mov,mp4\\nframe=    1 fps=0.0\\rframe=    2 fps=0.0\\r")
sys.stderr.flush()
if data.startswith(b"hang"):
    time.sleep(600)
if data.startswith(b"fail"):
    sys.stderr.write("\\nInvalid data found when processing input\\n")
    sys.exit(1)
if data.startswith(b"noout"):
    sys.exit(0)
if data.startswith(b"slow"):
    time.sleep(0.3)
with open(dst, "wb") as f:
    f.write(b"processed:" + data)
'''

# ========== Fixtures Compartilhadas ==========

@pytest.fixture
def fake_ffmpeg(tmp_path):
    """Executável que imita o FFmpeg a partir do conteúdo da entrada"""
    script = tmp_path / "fake_ffmpeg"
    script.write_text(FAKE_FFMPEG.format(python=sys.executable))
    script.chmod(script.stat().st_mode | stat.S_IEXEC | stat.S_IXGRP | stat.S_IXOTH)
    return str(script)

@pytest.fixture
def work_dirs(tmp_path):
    temp_dir = tmp_path / "tmp"
    output_dir = tmp_path / "outputs"
    return temp_dir, output_dir

@pytest.fixture
def make_processor(fake_ffmpeg, work_dirs):
    """Fábrica de BatchProcessor apontando para diretórios temporários"""
    temp_dir, output_dir = work_dirs

    def _make(capacity: int = 2, **kwargs) -> BatchProcessor:
        kwargs.setdefault("temp_dir", str(temp_dir))
        kwargs.setdefault("output_dir", str(output_dir))
        kwargs.setdefault("ffmpeg_path", fake_ffmpeg)
        kwargs.setdefault("job_timeout", 10)
        return BatchProcessor(WorkerPool(capacity=capacity), **kwargs)

    return _make

def media(*contents: bytes, prefix: str = "clip") -> list:
    return [MediaFile(filename=f"{prefix}_{i}.mp4", data=c) for i, c in enumerate(contents)]

def leftover_artifacts(temp_dir: Path) -> list:
    if not Path(temp_dir).exists():
        return []
    return [p.name for p in Path(temp_dir).iterdir()]
