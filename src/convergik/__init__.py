"""convergik - A declarative reconciliation core for infrastructure-as-code resource bindings."""

from .blueprints import Blueprint as Blueprint
from .context import Context as Context
from .context import Settings as Settings
from .diff import ChangeSet as ChangeSet
from .diff import diff as diff
from .errors import Conflict as Conflict
from .errors import Fatal as Fatal
from .errors import Inconsistency as Inconsistency
from .errors import NotFound as NotFound
from .errors import ProviderError as ProviderError
from .errors import ReconcileError as ReconcileError
from .errors import Throttled as Throttled
from .errors import WaitTimeout as WaitTimeout
from .instance import Provenance as Provenance
from .instance import ResourceInstance as ResourceInstance
from .lifecycle import LifecycleState as LifecycleState
from .lifecycle import TransitionEvent as TransitionEvent
from .operations import Absent as Absent
from .operations import Ensure as Ensure
from .operations import Present as Present
from .properties import Kind as Kind
from .properties import Mutability as Mutability
from .properties import PropertyDescriptor as PropertyDescriptor
from .properties import Requiredness as Requiredness
from .properties import ResourceSchema as ResourceSchema
from .properties import describe as describe
from .provider import ProviderAdapter as ProviderAdapter
from .provider import provider as provider
from .reconciler import Outcome as Outcome
from .reconciler import Reconciler as Reconciler
from .retry import RetryPolicy as RetryPolicy
from .state import FileStateStore as FileStateStore
from .state import MemoryStateStore as MemoryStateStore
from .state import StateRecord as StateRecord
from .state import StateStore as StateStore
from .tags import reconcile_items as reconcile_items
from .tags import reconcile_tags as reconcile_tags
from .waiter import WaitOutcome as WaitOutcome
from .waiter import WaitSpec as WaitSpec
from .waiter import wait as wait
from .workspace import Workspace as Workspace
