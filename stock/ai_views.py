from stock.services.ai_assistant_service import InventoryAnalysisService
from stock.views import BaseStockView, handle_service_error


class InventoryAnalysisView(BaseStockView):
    """
    POST /api/stock/ai/analysis/

    Markdown restock advice for the current inventory. The body is ignored.

    Response:
    {
        "success": true,
        "analysis": "### Restock warnings\\n..."
    }

    Configuration problems and upstream failures come back as a readable
    message in ``analysis`` rather than as an error status.
    """

    permissions = {"post": "view_dashboard"}

    def post(self, request):
        try:
            return self.success({"analysis": InventoryAnalysisService.generate()})
        except Exception as e:
            return handle_service_error(e)
