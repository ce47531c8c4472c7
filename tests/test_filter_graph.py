import itertools

import pytest

from media_pipeline.errors import InvalidInput
from media_pipeline.filter_graph import ENCODING_ARGS, build_command_spec
from media_pipeline.schemas import ProcessingOptions

TOGGLES = [
    "remove_silence", "remove_static", "auto_pacing", "auto_crop",
    "stabilize", "color_correct", "auto_volume", "face_focus",
]

# ========== Testes para o Filter Graph Builder ==========

def test_same_options_always_yield_same_spec():
    """Sem variação entre execuções para qualquer combinação de toggles"""
    for values in itertools.product([False, True], repeat=len(TOGGLES)):
        options = ProcessingOptions(silence_threshold=0.4, min_duration=2, **dict(zip(TOGGLES, values)))
        first = build_command_spec(options)
        second = build_command_spec(ProcessingOptions(**options.model_dump()))

        assert first == second
        assert first.to_args("ffmpeg", "in.mp4", "out.mp4") == second.to_args("ffmpeg", "in.mp4", "out.mp4")

def test_silence_and_volume_without_video_filters():
    options = ProcessingOptions(remove_silence=True, auto_volume=True, stabilize=False)
    spec = build_command_spec(options)

    assert spec.filter_names == ["silence_removal", "loudness_normalization", "encoding"]
    assert spec.video_filters == ()

    args = spec.to_args("ffmpeg", "in.mp4", "out.mp4")
    assert "-vf" not in args
    assert args[-1] == "out.mp4"
    # Codificação fixa logo antes do arquivo de saída
    assert tuple(args[-1 - len(ENCODING_ARGS):-1]) == ENCODING_ARGS

def test_fixed_order_with_everything_enabled():
    options = ProcessingOptions(**{name: True for name in TOGGLES})
    spec = build_command_spec(options)

    assert spec.filter_names == [
        "silence_removal",
        "loudness_normalization",
        "stabilization",
        "color_balance",
        "crop_detection",
        "subject_focus",
        "scene_selection",
        "encoding",
    ]

def test_scene_selection_shared_by_static_and_pacing():
    for flags in ({"remove_static": True}, {"auto_pacing": True}, {"remove_static": True, "auto_pacing": True}):
        spec = build_command_spec(ProcessingOptions(**flags))
        assert [s.name for s in spec.video_filters] == ["scene_selection"]

def test_silence_threshold_maps_to_decibels():
    spec = build_command_spec(ProcessingOptions(remove_silence=True, silence_threshold=0.5))
    expression = spec.audio_filters[0].expression

    assert expression.count("start_threshold=-30dB") == 2
    assert expression.count("areverse") == 2

    spec = build_command_spec(ProcessingOptions(remove_silence=True, silence_threshold=0.25))
    assert "start_threshold=-15dB" in spec.audio_filters[0].expression

def test_loudness_target_is_fixed():
    spec = build_command_spec(ProcessingOptions(auto_volume=True))
    assert spec.audio_filters[0].expression == "loudnorm=I=-16:TP=-1.5:LRA=11"

def test_min_duration_in_microseconds():
    spec = build_command_spec(ProcessingOptions(min_duration=3))
    assert spec.min_segment_duration_us == 3_000_000

    args = spec.to_args("ffmpeg", "in.mp4", "out.mp4")
    assert args[args.index("-frag_duration") + 1] == "3000000"

def test_args_are_a_list_not_a_shell_string():
    """Nomes com espaços e metacaracteres passam intactos como um único argumento"""
    spec = build_command_spec(ProcessingOptions(stabilize=True, color_correct=True))
    nasty = "/tmp/my video; rm -rf ~.mp4"
    args = spec.to_args("/usr/bin/ffmpeg", nasty, "/tmp/out file.mp4")

    assert args[0] == "/usr/bin/ffmpeg"
    assert args[args.index("-i") + 1] == nasty
    assert args[args.index("-vf") + 1] == "deshake,eq=contrast=1.1:brightness=0.03:saturation=1.15"

def test_negative_duration_rejected():
    options = ProcessingOptions.model_construct(silence_threshold=0.5, min_duration=-1)
    with pytest.raises(InvalidInput):
        build_command_spec(options)

def test_threshold_out_of_range_rejected():
    options = ProcessingOptions.model_construct(silence_threshold=1.5, min_duration=0)
    with pytest.raises(InvalidInput):
        build_command_spec(options)
