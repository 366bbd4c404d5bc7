# models_bootstrap.py
from availability import models as _availability_models
from blackout import models as _blackout_models
from series import models as _series_models
from occurrence import models as _occurrence_models
from schedulingconfig import models as _schedulingconfig_models
