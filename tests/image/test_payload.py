import os

import pytest

from imagegen.image.payload import build_generation_request, resolve_output_dir

DEFAULT_DIR = "./output"


class TestDefaults:
    def test_prompt_only_gets_every_default(self):
        request = build_generation_request({"prompt": "a cat"}, DEFAULT_DIR)
        payload = request.to_api_payload()

        assert payload == {
            "prompt": "a cat",
            "negative_prompt": "",
            "steps": 4,
            "width": 1024,
            "height": 1024,
            "cfg_scale": 1,
            "sampler_name": "Euler",
            "scheduler_name": "Simple",
            "seed": -1,
            "n_iter": 1,
            "distilled_cfg_scale": 3.5,
            "tiling": False,
            "restore_faces": False,
        }
        assert request.output_dir == DEFAULT_DIR

    def test_no_field_left_unset(self):
        payload = build_generation_request({"prompt": "x"}, DEFAULT_DIR).to_api_payload()
        assert all(value is not None for value in payload.values())

    def test_output_dir_not_sent_to_webui(self):
        payload = build_generation_request(
            {"prompt": "x", "output_path": "/tmp/imgs"}, DEFAULT_DIR
        ).to_api_payload()
        assert "output_dir" not in payload
        assert "output_path" not in payload

    def test_provided_values_kept(self):
        request = build_generation_request(
            {
                "prompt": "a dog",
                "negative_prompt": "blurry",
                "steps": 30,
                "width": 768,
                "height": 512,
                "cfg_scale": 7.5,
                "distilled_cfg_scale": 2,
                "sampler_name": "DPM++ 2M",
                "scheduler_name": "Karras",
                "seed": 1234,
                "batch_size": 3,
                "restore_faces": True,
                "tiling": True,
            },
            DEFAULT_DIR,
        )
        payload = request.to_api_payload()
        assert payload["negative_prompt"] == "blurry"
        assert payload["steps"] == 30
        assert (payload["width"], payload["height"]) == (768, 512)
        assert payload["cfg_scale"] == 7.5
        assert payload["distilled_cfg_scale"] == 2
        assert payload["sampler_name"] == "DPM++ 2M"
        assert payload["scheduler_name"] == "Karras"
        assert payload["seed"] == 1234
        assert payload["n_iter"] == 3
        assert payload["restore_faces"] is True
        assert payload["tiling"] is True

    def test_seed_zero_is_kept(self):
        request = build_generation_request({"prompt": "x", "seed": 0}, DEFAULT_DIR)
        assert request.seed == 0

    @pytest.mark.parametrize(
        "field,value,expected",
        [
            ("width", 0, 1024),
            ("height", 0, 1024),
            ("cfg_scale", 0, 1),
            ("distilled_cfg_scale", 0, 3.5),
            ("sampler_name", "", "Euler"),
            ("scheduler_name", "", "Simple"),
        ],
    )
    def test_falsy_values_fall_back_to_default(self, field, value, expected):
        request = build_generation_request({"prompt": "x", field: value}, DEFAULT_DIR)
        assert getattr(request, field) == expected

    @pytest.mark.parametrize("value,expected", [(1, True), ("", False), (0, False), ("yes", True)])
    def test_booleans_are_strict(self, value, expected):
        request = build_generation_request(
            {"prompt": "x", "tiling": value, "restore_faces": value}, DEFAULT_DIR
        )
        assert request.tiling is expected
        assert request.restore_faces is expected


class TestOutputDir:
    def test_absent_uses_default(self):
        assert resolve_output_dir(None, DEFAULT_DIR) == DEFAULT_DIR

    def test_empty_uses_default(self):
        assert resolve_output_dir("", DEFAULT_DIR) == DEFAULT_DIR

    def test_trimmed_and_normalized(self):
        assert resolve_output_dir("  renders/../images//cats/ ", DEFAULT_DIR) == os.path.normpath(
            "images/cats"
        )

    def test_absolute_path_kept_as_directory(self, tmp_path):
        target = str(tmp_path / "out")
        assert resolve_output_dir(target, DEFAULT_DIR) == target
