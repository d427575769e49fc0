"""
Plugin registration

Registers the cloud tunnel pipeline as a video source with a host
registry.
"""

from .pipeline import CloudTunnelPipeline


def register_pipelines(registry):
    """Called when the host loads the plugin."""
    registry.register(
        name="cloud_tunnel",
        pipeline_class=CloudTunnelPipeline,
        description="Volumetric cloud tunnel flythrough as video source",
    )
