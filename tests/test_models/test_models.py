"""Tests for model construction."""

import pytest

from livematte.models import MattingModel, create_model
from livematte.utils.config import ModelConfig


def test_unknown_backend():
    with pytest.raises(ValueError):
        create_model(ModelConfig(backend="magic"))


def test_matting_model_is_abstract():
    with pytest.raises(TypeError):
        MattingModel()


@pytest.mark.gpu
def test_rvm_on_cuda():
    """Loads the real network; needs torch, CUDA and network access."""
    torch = pytest.importorskip("torch")
    if not torch.cuda.is_available():
        pytest.skip("CUDA not available")

    import numpy as np
    from livematte.core import RecurrentState

    model = create_model(ModelConfig(device="cuda"))
    try:
        frame = np.zeros((72, 128, 3), dtype=np.uint8)
        prediction = model.predict(frame, frame, RecurrentState.empty())
        assert prediction.foreground.shape == (72, 128, 3)
        assert prediction.alpha.shape == (72, 128)
        assert not prediction.state.is_empty
    finally:
        model.close()


class TestRobustVideoMattingOnCpu:
    """Runs the RVM wrapper against a stand-in network loaded via torch.hub."""

    @pytest.fixture
    def fake_network(self, monkeypatch):
        torch = pytest.importorskip("torch")

        class FakeRVM(torch.nn.Module):
            def __init__(self):
                super().__init__()
                self.inputs = []

            def forward(self, src, r1=None, r2=None, r3=None, r4=None, downsample_ratio=1.0):
                self.inputs.append((src, (r1, r2, r3, r4), downsample_ratio))
                n = len(self.inputs)
                pha = torch.ones_like(src[:, :1])
                rec = [torch.full((1, 1), float(n)) for _ in range(4)]
                return (src, pha, *rec)

        network = FakeRVM()
        loads = []

        def fake_load(repo, variant):
            loads.append((repo, variant))
            return network

        monkeypatch.setattr(torch.hub, "load", fake_load)
        network.loads = loads
        return network

    def test_loads_from_hub(self, fake_network):
        model = create_model(ModelConfig(variant="resnet50"))
        assert model.name == "rvm-resnet50"
        assert fake_network.loads == [("PeterL1n/RobustVideoMatting", "resnet50")]
        assert not fake_network.training

    def test_predict_layout(self, fake_network):
        import numpy as np
        from livematte.core import RecurrentState

        model = create_model(ModelConfig(downsample_ratio=0.5))
        frame = np.zeros((4, 6, 3), dtype=np.uint8)
        frame[..., 0] = 200
        frame[..., 2] = 10

        prediction = model.predict(frame, frame, RecurrentState.empty())

        src, priors, ratio = fake_network.inputs[0]
        assert tuple(src.shape) == (1, 3, 4, 6)
        assert float(src.max()) == pytest.approx(200 / 255)
        assert priors == (None, None, None, None)
        assert ratio == 0.5

        assert prediction.foreground.dtype == np.uint8
        np.testing.assert_array_equal(prediction.foreground, frame)
        assert prediction.alpha.shape == (4, 6)
        assert (prediction.alpha == 255).all()

    def test_state_threads_into_next_call(self, fake_network):
        import numpy as np
        from livematte.core import RecurrentState

        model = create_model(ModelConfig())
        frame = np.zeros((2, 2, 3), dtype=np.uint8)

        first = model.predict(frame, frame, RecurrentState.empty())
        assert len(first.state.tensors) == 4
        model.predict(frame, frame, first.state)

        _, priors, _ = fake_network.inputs[1]
        assert all(p is t for p, t in zip(priors, first.state.tensors))
        model.close()
