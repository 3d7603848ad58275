import os
import logging
from typing import List, Dict, Any, Optional
import httpx

# Configure logging
logger = logging.getLogger(__name__)


class ApifyError(RuntimeError):
    """Raised when the Apify API cannot be reached or answers with an error."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class ApifyService:
    """Thin client for the Apify actor-run API: start runs, read run status, read datasets."""

    def __init__(
        self,
        api_token: Optional[str] = None,
        base_url: Optional[str] = None,
        request_timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Initialize the Apify service.

        Args:
            api_token: Apify API token. If not provided, will be loaded from environment.
            base_url: Apify API base URL. If not provided, will use the default.
            request_timeout: Timeout in seconds for each API call.
            transport: Optional httpx transport, used to stub the API in tests.
        """
        self.api_token = api_token or os.getenv("APIFY_API_TOKEN")
        if not self.api_token:
            raise ValueError("Apify API token not provided and not found in environment")

        self.base_url = (base_url or os.getenv("APIFY_BASE_URL", "https://api.apify.com/v2")).rstrip("/")
        self.request_timeout = request_timeout
        self.transport = transport

    async def _make_request(
        self,
        method: str,
        endpoint: str,
        params: Optional[Dict[str, Any]] = None,
        json_data: Optional[Dict[str, Any]] = None
    ) -> Any:
        """
        Make a single request to the Apify API.

        Args:
            method: HTTP method (GET or POST)
            endpoint: API endpoint
            params: Query parameters
            json_data: JSON request body

        Returns:
            Any: Decoded JSON response

        Raises:
            ApifyError: On transport failures, error statuses or non-JSON bodies.
        """
        url = f"{self.base_url}{endpoint}"
        headers = {"Authorization": f"Bearer {self.api_token}"}

        if method.upper() not in ("GET", "POST"):
            raise ValueError(f"Unsupported HTTP method: {method}")

        try:
            async with httpx.AsyncClient(transport=self.transport, timeout=self.request_timeout) as client:
                response = await client.request(
                    method.upper(),
                    url,
                    headers=headers,
                    params=params,
                    json=json_data,
                )
            response.raise_for_status()
            return response.json()
        except httpx.HTTPStatusError as e:
            raise ApifyError(
                f"Apify API returned error: {e.response.status_code} - {e.response.text}",
                status_code=e.response.status_code,
            )
        except httpx.RequestError as e:
            raise ApifyError(f"Error communicating with Apify API: {str(e)}")
        except ValueError as e:
            raise ApifyError(f"Apify API returned a non-JSON body: {str(e)}")

    async def start_actor_run(self, actor_id: str, run_input: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """
        Start an Apify actor run.

        Args:
            actor_id: ID of the Apify actor ("user/actor" or "user~actor")
            run_input: Input for the actor run

        Returns:
            Dict[str, Any]: Run object, including "id" and "defaultDatasetId"
        """
        endpoint = f"/acts/{actor_id.replace('/', '~')}/runs"
        response = await self._make_request("POST", endpoint, json_data=run_input or {})

        run = response.get("data") if isinstance(response, dict) else None
        if not isinstance(run, dict):
            raise ApifyError("Run data not found in response")

        logger.info(f"Started Apify actor run: {run.get('id')}")
        return run

    async def get_run(self, run_id: str) -> Dict[str, Any]:
        """Fetch the current state of an actor run."""
        response = await self._make_request("GET", f"/actor-runs/{run_id}")
        run = response.get("data") if isinstance(response, dict) else None
        if not isinstance(run, dict):
            raise ApifyError(f"Run data not found for run {run_id}")
        return run

    async def get_dataset_items(self, dataset_id: str, limit: Optional[int] = None) -> List[Dict[str, Any]]:
        """
        Get items from an Apify dataset.

        Args:
            dataset_id: ID of the dataset
            limit: Maximum number of items to return

        Returns:
            List[Dict[str, Any]]: Dataset items
        """
        params: Dict[str, Any] = {"format": "json"}
        if limit is not None:
            params["limit"] = limit

        items = await self._make_request("GET", f"/datasets/{dataset_id}/items", params=params)
        if not isinstance(items, list):
            raise ApifyError(f"Unexpected dataset payload for dataset {dataset_id}")
        return items
