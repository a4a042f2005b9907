# LPR Hub — Database Models
# Import all models here for SQLAlchemy discovery

from lpr_hub.models.site import Site                      # noqa
from lpr_hub.models.camera import Camera, CameraStatus    # noqa
from lpr_hub.models.event import Event                    # noqa
