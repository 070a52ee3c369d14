"""
Tests for the browser pages.
"""


class TestAddSchoolPage:
    """GET /add-school"""

    def test_embeds_upload_mode(self, client):
        """The form page is told it runs in upload mode."""
        response = client.get("/add-school")

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/html")
        assert 'data-image-mode="upload"' in response.text
        assert "__IMAGE_MODE__" not in response.text

    def test_embeds_default_mode_and_image(self, default_mode_client):
        """In default mode the page carries the mode and the default image."""
        response = default_mode_client.get("/add-school")

        assert 'data-image-mode="default"' in response.text
        assert "__DEFAULT_IMAGE_URL__" not in response.text
        assert "images.unsplash.com" in response.text


class TestShowSchoolsPage:
    """GET /show-schools"""

    def test_served_as_html(self, client):
        """The listing page is HTML that loads schools from the API."""
        response = client.get("/show-schools")

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/html")
        assert 'fetch("/schools")' in response.text
