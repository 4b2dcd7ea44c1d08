from polyrel.cascade.behavior import SaveRelations
from polyrel.cascade.diff import compute_pk_diff, identity_token
from polyrel.cascade.persister import CascadeCycle, CascadePersister, CycleState
from polyrel.cascade.tracker import RelationValueTracker, NOT_TRACKED
