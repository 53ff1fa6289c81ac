import asyncio
import sys

import aiohttp
from pydantic import ValidationError

from ado_bridge import actions, logger, metrics
from ado_bridge.azure import AzureDevOps
from ado_bridge.config import Config, SourceReference
from ado_bridge.exceptions import UnrecoverableError
from ado_bridge.runner import PipelineRunner


def _validation_message(error: ValidationError) -> str:
    messages = []
    for item in error.errors():
        if item["type"] == "value_error":
            messages.append(item["msg"].removeprefix("Value error, "))
        else:
            location = ".".join(str(part) for part in item["loc"])
            messages.append(f"{location}: {item['msg']}")
    return "; ".join(messages)


async def run(config: Config, source: SourceReference) -> int:
    async with aiohttp.ClientSession() as session:
        try:
            client = AzureDevOps(session=session, config=config)
            logger.info(
                'Creating connection with Azure DevOps service : "%s"',
                client.collection_url,
            )
            runner = PipelineRunner(config=config, source=source, client=client)
            await runner.start()
        except (UnrecoverableError, aiohttp.ClientError) as e:
            logger.debug("Pipeline run failed", exc_info=e)
            return actions.set_failed(str(e) or type(e).__name__)
        except asyncio.TimeoutError as e:
            logger.debug("Pipeline run failed", exc_info=e)
            return actions.set_failed("Request to Azure DevOps timed out")
        except ValidationError as e:
            logger.debug("Pipeline run failed", exc_info=e)
            return actions.set_failed(
                f"Unexpected {e.title} from Azure DevOps: {_validation_message(e)}"
            )
        finally:
            metrics.push_metrics(config.METRICS_PUSHGATEWAY_URL)
    return 0


def main() -> int:
    actions.setup_logging()
    try:
        config = Config()
        source = SourceReference()
    except ValidationError as e:
        return actions.set_failed(_validation_message(e))

    actions.add_mask(config.AZURE_DEVOPS_TOKEN)
    logger.setLevel(config.OVERRIDE_LOGGING)
    config.print_config()

    return asyncio.run(run(config, source))


if __name__ == "__main__":
    sys.exit(main())
