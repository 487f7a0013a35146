from core.connector import Connector, decode_parameters  # noqa: F401
from core.metadata_store import MetadataStore  # noqa: F401
from core.capabilities import discover, parameter_contract  # noqa: F401
from core.synthesizer import synthesize  # noqa: F401
from core.binder import SynthesizedStatement, deparameterize, SQL_NULL  # noqa: F401
from core.executor import ExecutionAdapter, RowStream  # noqa: F401
