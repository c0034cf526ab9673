"""Matting model backends."""

from livematte.models.base import MattingModel, MattingPrediction


def create_model(config) -> MattingModel:
    """Build the model described by a :class:`ModelConfig`."""
    if config.backend == "rvm":
        from livematte.models.rvm import RobustVideoMattingModel

        return RobustVideoMattingModel(
            variant=config.variant,
            device=config.device,
            downsample_ratio=config.downsample_ratio,
            hub_repo=config.hub_repo,
        )
    raise ValueError(f"Unknown model backend: {config.backend!r}")


__all__ = [
    "MattingModel",
    "MattingPrediction",
    "create_model",
]
