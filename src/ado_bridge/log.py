from pydantic import BaseModel

from ado_bridge import logger


def _dump(obj: BaseModel) -> str:
    return obj.model_dump_json(by_alias=True, exclude_none=True, indent=2)


def log_pipeline_object(definition: BaseModel):
    logger.debug("Pipeline object: %s", _dump(definition))


def log_pipeline_trigger_input(request: BaseModel):
    logger.debug("Pipeline trigger input: %s", _dump(request))


def log_pipeline_trigger_output(response: BaseModel):
    logger.debug("Pipeline trigger output: %s", _dump(response))


def log_pipeline_triggered(pipeline_name: str, project_name: str):
    logger.info("Pipeline '%s' is triggered in project '%s'", pipeline_name, project_name)


def log_output_url(url: str | None):
    if url:
        logger.info("More details on triggered pipeline can be found at: %s", url)
