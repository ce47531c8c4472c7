"""
Construção determinística da cadeia de filtros do FFmpeg.

A ordem de composição é fixa e não depende de quais opções estão ativas:
áudio (silêncio, loudnorm), vídeo (estabilização, cor, crop, foco, cenas),
duração mínima de segmento e, por último, os parâmetros de codificação.
"""

from dataclasses import dataclass
from typing import List, Tuple, Union
from pathlib import Path

from .errors import InvalidInput
from .schemas import ProcessingOptions

# Normalização de loudness (EBU R128): alvo, pico e faixa
LOUDNORM_TARGET = "I=-16:TP=-1.5:LRA=11"
SCENE_CHANGE_THRESHOLD = 0.3

ENCODING_ARGS: Tuple[str, ...] = (
    "-c:v", "libx264",
    "-preset", "medium",
    "-crf", "23",
    "-c:a", "aac",
    "-b:a", "128k",
)

ENCODING_STEP = "encoding"

@dataclass(frozen=True)
class FilterStep:
    name: str
    expression: str

@dataclass(frozen=True)
class CommandSpec:
    audio_filters: Tuple[FilterStep, ...]
    video_filters: Tuple[FilterStep, ...]
    min_segment_duration_us: int
    encoding: Tuple[str, ...] = ENCODING_ARGS

    @property
    def filters(self) -> Tuple[FilterStep, ...]:
        return self.audio_filters + self.video_filters

    @property
    def filter_names(self) -> List[str]:
        """Nomes na ordem de aplicação, com a codificação fixa sempre no fim"""
        return [step.name for step in self.filters] + [ENCODING_STEP]

    def to_args(self, ffmpeg: str, input_path: Union[str, Path], output_path: Union[str, Path]) -> List[str]:
        """Lista de argumentos para o processo (nunca uma string de shell)"""
        args = [ffmpeg, "-hide_banner", "-nostdin", "-nostats", "-y", "-i", str(input_path)]

        if self.audio_filters:
            args.extend(["-af", ",".join(step.expression for step in self.audio_filters)])
        if self.video_filters:
            args.extend(["-vf", ",".join(step.expression for step in self.video_filters)])

        args.extend(["-frag_duration", str(self.min_segment_duration_us)])
        args.extend(self.encoding)
        args.append(str(output_path))
        return args

def _silence_removal(threshold: float) -> FilterStep:
    # remove no início, inverte, remove de novo (= fim) e desinverte
    db = f"{threshold * 60:g}"
    trim = f"silenceremove=start_periods=1:start_threshold=-{db}dB"
    return FilterStep("silence_removal", f"{trim},areverse,{trim},areverse")

def build_command_spec(options: ProcessingOptions) -> CommandSpec:
    """Mapeia as opções de processamento para um CommandSpec"""
    if options.min_duration < 0:
        raise InvalidInput(f"Duração mínima negativa: {options.min_duration}")
    if not 0.0 <= options.silence_threshold <= 1.0:
        raise InvalidInput(f"Limiar de silêncio fora de [0, 1]: {options.silence_threshold}")

    audio = []
    if options.remove_silence:
        audio.append(_silence_removal(options.silence_threshold))
    if options.auto_volume:
        audio.append(FilterStep("loudness_normalization", f"loudnorm={LOUDNORM_TARGET}"))

    video = []
    if options.stabilize:
        video.append(FilterStep("stabilization", "deshake"))
    if options.color_correct:
        video.append(FilterStep("color_balance", "eq=contrast=1.1:brightness=0.03:saturation=1.15"))
    if options.auto_crop:
        video.append(FilterStep("crop_detection", "cropdetect=limit=24:round=16:reset=0"))
    if options.face_focus:
        video.append(FilterStep(
            "subject_focus",
            "zoompan=z='min(zoom+0.0015,1.2)':d=1:x='iw/2-(iw/zoom/2)':y='ih/2-(ih/zoom/2)'"
        ))
    if options.remove_static or options.auto_pacing:
        video.append(FilterStep(
            "scene_selection",
            f"select='gt(scene,{SCENE_CHANGE_THRESHOLD})',setpts=N/FRAME_RATE/TB"
        ))

    return CommandSpec(
        audio_filters=tuple(audio),
        video_filters=tuple(video),
        min_segment_duration_us=options.min_duration * 1_000_000,
    )
