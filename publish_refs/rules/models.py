from typing import Literal

from pydantic import BaseModel, Field

from publish_refs.domain.entities import ReplicationAction

ProviderFailurePolicy = Literal["isolate", "propagate"]


class SearchRules(BaseModel):
    content_node: str = Field(default="jcr:content", min_length=1)
    structure_node: str = Field(default="structure", min_length=1)
    provider_failures: ProviderFailurePolicy = "isolate"

class ReplicationRules(BaseModel):
    event_topic: str = "com/day/cq/wcm/workflow/req/for/activation"
    default_action: ReplicationAction = ReplicationAction.ACTIVATE

class Rules(BaseModel):
    search: SearchRules = Field(default_factory=SearchRules)
    replication: ReplicationRules = Field(default_factory=ReplicationRules)
