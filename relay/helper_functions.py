from google.cloud import secretmanager

from relay.cloud_logging import log_text


def get_secret_value(project_id, secret_id, version_id="latest"):
    """
    Retrieve a secret value from Google Cloud Secret Manager.

    This function accesses a secret stored in Google Cloud Secret Manager
    and returns its value as a string. It uses Application Default Credentials (ADC)
    from the environment for authentication.

    Parameters
    ----------
    project_id : str
        The Google Cloud project ID where the secret is stored
    secret_id : str
        The ID of the secret to retrieve
    version_id : str, optional
        The version of the secret to retrieve, defaults to "latest"

    Returns
    -------
    str
        The secret payload as a UTF-8 decoded string

    Notes
    -----
    Requires appropriate GCP permissions to access Secret Manager resources.
    """
    # Never include the secret payload itself.
    log_text(
        f"Fetching secret '{secret_id}' from project '{project_id}' (version '{version_id}').",
        severity="DEBUG",
    )
    client = secretmanager.SecretManagerServiceClient()

    name = f"projects/{project_id}/secrets/{secret_id}/versions/{version_id}"
    response = client.access_secret_version(request={"name": name})
    payload = response.payload.data.decode("UTF-8")

    log_text(f"Successfully fetched secret '{secret_id}'.", severity="INFO")
    return payload


def format_results(subject_url, email, phone):
    """
    Build the Slack text that replaces the placeholder once Clay answers.

    Parameters
    ----------
    subject_url : str
        LinkedIn profile URL; when empty a generic phrase is used instead
    email : str
        Email found by Clay, or the "—" placeholder
    phone : str
        Phone number found by Clay, or the "—" placeholder

    Returns
    -------
    str
        Slack mrkdwn text with the linked profile followed by labelled lines
    """
    subject = f"<{subject_url}|LinkedIn profile>" if subject_url else "this profile"
    return f"Results for {subject}\n• Email: {email}\n• Phone: {phone}"
