from edgedeploy.adapters.api_client import DeployApiClient
from edgedeploy.config import DeploySettings
from edgedeploy.core.assets import discover_assets, prepare_assets
from edgedeploy.core.associations import DomainAssociationManager
from edgedeploy.core.certificates import CertificateProvisioner
from edgedeploy.core.deployments import DeploymentReconciler
from edgedeploy.core.domains import DomainManager
from edgedeploy.core.projects import ProjectManager
from edgedeploy.core.verification import DomainVerifier
from edgedeploy.errors import DeployError
from edgedeploy.models import AssetSource, DeploymentPlan, DeploymentState

__version__ = "0.1.0"
