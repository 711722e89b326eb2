"""Form rule sets shared by server-side validation and the browser pre-check."""
