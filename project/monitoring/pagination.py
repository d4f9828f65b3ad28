from rest_framework.pagination import PageNumberPagination


class OptionalPagination(PageNumberPagination):
    """
    Lists are returned whole unless the client asks for a page, in which
    case the usual ``count/next/previous/results`` envelope is used.
    """
    page_size = 25
    page_size_query_param = 'page_size'
    max_page_size = 1000

    def get_page_size(self, request):
        page_size = request.query_params.get(self.page_size_query_param)
        if page_size == 'all':
            return None  # Return None to indicate retrieving all values
        if page_size:
            try:
                value = int(page_size)
            except ValueError:
                value = 0
            if value > 0:
                return min(value, self.max_page_size)
        return self.page_size

    def paginate_queryset(self, queryset, request, view=None):
        params = request.query_params
        if self.page_query_param not in params and self.page_size_query_param not in params:
            return None
        page_size = self.get_page_size(request)
        if page_size is None:
            return None
        return super().paginate_queryset(queryset, request, view)
